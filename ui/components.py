"""
UI components for the AI Campaign Planner application.
"""

import streamlit as st
import json
from typing import Dict, Any, List, Optional, Tuple
from datetime import datetime
import logging
import pandas as pd

from business_logic.plan_validator import BriefValidator

logger = logging.getLogger(__name__)

EXAMPLE_BRIEF = {
    "campaign_id": "cmp_focusflow_q3",
    "goal": "trial_signups",
    "product": {
        "name": "FocusFlow",
        "category": "productivity",
        "key_features": ["AI-assisted task prioritization", "Calendar integration", "Focus timer"],
        "price": "$9.99/mo"
    },
    "budget": 5000,
    "channels": ["search", "social"],
    "audience_hints": ["remote workers", "freelancers"],
    "tone": "friendly"
}


class BriefForm:
    """
    BriefForm component for entering and checking a campaign brief.

    The brief is edited as JSON, parsed, and checked against the brief
    schema before the form reports it as ready to submit.
    """

    def __init__(self, brief_validator: Optional[BriefValidator] = None):
        """
        Initialize the BriefForm.

        Args:
            brief_validator: Validator used for real-time feedback
        """
        self.brief_validator = brief_validator or BriefValidator()

    def parse_brief(self, text: str) -> Tuple[Optional[Dict[str, Any]], List[str]]:
        """
        Parse and check brief JSON text.

        Args:
            text: Brief JSON as typed by the user

        Returns:
            Tuple of (brief document or None, list of error messages)
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            return None, [f"Brief is not valid JSON: {str(e)}"]

        result = self.brief_validator.check(data)
        if not result.is_valid:
            return None, [str(issue) for issue in result.errors]

        return data, []

    def render(self) -> Tuple[Optional[Dict[str, Any]], bool]:
        """
        Render the brief form.

        Returns:
            Tuple of (brief document or None, submitted)
        """
        st.subheader("📋 Campaign Brief")

        with st.form("brief_form", clear_on_submit=False):
            brief_text = st.text_area(
                "Brief JSON *",
                value=st.session_state.get('brief_text', json.dumps(EXAMPLE_BRIEF, indent=2)),
                height=360,
                help="campaign_id, goal, product (name, category, key_features, price), budget, channels"
            )
            submitted = st.form_submit_button("🚀 Generate Campaign Plan", use_container_width=True)

        st.session_state['brief_text'] = brief_text
        brief, errors = self.parse_brief(brief_text)

        if errors:
            self._display_validation_errors(errors)
        else:
            st.success(f"✅ Brief ready: {brief['product']['name']} · ${brief['budget']:,.2f} · "
                       f"{', '.join(brief['channels'])}")

        return brief, submitted and brief is not None

    def _display_validation_errors(self, errors: List[str]):
        st.error("❌ Please fix the following brief errors:")
        for error in errors:
            st.write(f"• {error}")


def build_creatives_dataframe(plan: Any) -> pd.DataFrame:
    """
    Flatten a plan's creatives into a table ordered by rank.

    Args:
        plan: Scored Plan

    Returns:
        DataFrame with one row per creative
    """
    rows = []
    for ad_group, creative in plan.iter_creatives():
        factors = creative.score_factors
        rows.append({
            'Rank': creative.performance_rank,
            'Creative': creative.id,
            'Ad Group': ad_group.id,
            'Channel': ad_group.channel,
            'Headline': creative.headline,
            'Body': creative.body,
            'CTA': creative.cta,
            'Score': creative.relative_score,
            'Keyword Match': factors.keyword_match if factors else None,
            'Headline Type': factors.headline_type_match if factors else None,
            'Best Practices': factors.best_practices if factors else None,
            'Channel Performance': factors.channel_performance if factors else None
        })

    df = pd.DataFrame(rows)
    if not df.empty and df['Rank'].notna().all():
        df = df.sort_values('Rank', kind='stable').reset_index(drop=True)
    return df


class PlanDisplayComponent:
    """
    Component for displaying a generated campaign plan.

    Shows the campaign overview, budget breakdown, ad groups with their
    scored creatives, a creative ranking table and request metrics.
    """

    def render(self, result: Any):
        """
        Render a plan result.

        Args:
            result: PlanResult from the controller
        """
        if result is None:
            st.warning("No campaign plan available to display.")
            return

        plan = result.plan

        st.subheader(f"📊 {plan.campaign_name}")
        col1, col2, col3 = st.columns(3)
        col1.metric("Total Budget", f"${plan.total_budget:,.2f}")
        col2.metric("Objective", plan.objective)
        col3.metric("Ad Groups", len(plan.ad_groups))

        if result.grounded:
            st.info("🔎 Plan grounded in verified product facts from the knowledge base.")
        else:
            st.warning("⚠️ No knowledge base match for this product. Plan was generated without grounding.")

        self._render_budget_breakdown(plan)
        self._render_ad_groups(plan)

        st.write("**Creative Ranking:**")
        st.dataframe(build_creatives_dataframe(plan), use_container_width=True, hide_index=True)

        self._render_metrics(result.metrics)

        with st.expander("Plan JSON"):
            st.json(plan.to_dict())

    def _render_budget_breakdown(self, plan: Any):
        st.write("**Budget Breakdown:**")
        for channel, amount in plan.budget_breakdown.items():
            percentage = (amount / plan.total_budget * 100) if plan.total_budget > 0 else 0
            st.write(f"• {channel}: ${amount:,.2f} ({percentage:.1f}%)")

        if not plan.checks.budget_sum_ok:
            st.warning("⚠️ Budget breakdown does not add up to the total budget.")
        if not plan.checks.channel_valid:
            st.warning("⚠️ Budget breakdown uses channels outside search, social and display.")

    def _render_ad_groups(self, plan: Any):
        for ad_group in plan.ad_groups:
            with st.expander(f"{ad_group.id} · {ad_group.channel or 'unassigned'}", expanded=False):
                if ad_group.target:
                    st.caption(", ".join(f"{key}: {value}" for key, value in ad_group.target.items()))
                for creative in ad_group.creatives:
                    score = f"{creative.relative_score:.1f}" if creative.relative_score is not None else "n/a"
                    st.markdown(f"**#{creative.performance_rank} {creative.headline}** (score {score})")
                    st.write(creative.body)
                    st.write(f"CTA: {creative.cta}")
                    st.caption(creative.justification)

    def _render_metrics(self, metrics: Any):
        st.write("**Request Metrics:**")
        col1, col2, col3 = st.columns(3)
        col1.metric("Tokens", f"{metrics.tokens.total:,}")
        col2.metric("Latency", f"{metrics.latency_ms:,} ms")
        col3.metric("Hallucination Score", f"{metrics.hallucination_flags.score * 100:.1f}%")

        if metrics.hallucination_flags.product_features_invented:
            st.warning("⚠️ Some creatives mention features that are not in the brief.")
        if metrics.hallucination_flags.invalid_channels:
            st.warning("⚠️ The plan allocates budget to unsupported channels.")

        for error in metrics.validation_errors:
            st.error(f"❌ {error}")


class PlanExportComponent:
    """
    Component for exporting a plan result as CSV or JSON.
    """

    def prepare_csv_export(self, result: Any) -> str:
        """CSV of the plan's creatives, best ranked first."""
        return build_creatives_dataframe(result.plan).to_csv(index=False)

    def prepare_json_export(self, result: Any) -> str:
        """JSON document with export info, plan, scores and metrics."""
        export_data = {
            'export_info': {
                'generated_at': datetime.now().isoformat(),
                'format': 'JSON'
            }
        }
        export_data.update(result.to_dict())
        return json.dumps(export_data, indent=2, ensure_ascii=False)

    def render(self, result: Any):
        """
        Render download buttons for a plan result.

        Args:
            result: PlanResult from the controller
        """
        if result is None:
            return

        st.subheader("📥 Export")
        campaign_id = result.plan.campaign_id
        col1, col2 = st.columns(2)

        try:
            with col1:
                st.download_button(
                    "Download Creatives (CSV)",
                    data=self.prepare_csv_export(result),
                    file_name=f"{campaign_id}_creatives.csv",
                    mime="text/csv",
                    use_container_width=True
                )
            with col2:
                st.download_button(
                    "Download Plan (JSON)",
                    data=self.prepare_json_export(result),
                    file_name=f"{campaign_id}_plan.json",
                    mime="application/json",
                    use_container_width=True
                )
        except (TypeError, ValueError) as e:
            logger.error(f"Error preparing export: {str(e)}")
            st.error(f"Error preparing export: {str(e)}")


def display_notification(notification: Dict[str, Any]):
    """
    Show an error handler notification.

    Args:
        notification: Output of ErrorHandler.create_user_notification
    """
    display = {
        'info': st.info,
        'warning': st.warning,
        'error': st.error
    }.get(notification.get('type'), st.error)

    display(f"**{notification.get('title', 'Error')}**: {notification.get('message', '')}")

    if notification.get('action'):
        st.caption(f"💡 {notification['action']}")

    if notification.get('technical_details'):
        with st.expander("Technical details"):
            st.code(notification['technical_details'])
