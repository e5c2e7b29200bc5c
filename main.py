"""
Main entry point for the AI Campaign Planner application.
"""
import logging
import streamlit as st

# Set up logging
logger = logging.getLogger(__name__)
from config.settings import config_manager
from data.manager import KnowledgeBaseManager
from ui.components import BriefForm, PlanDisplayComponent, PlanExportComponent, display_notification
from business_logic.plan_controller import CampaignPlanController


@st.cache_resource
def get_knowledge_base_manager() -> KnowledgeBaseManager:
    """One knowledge base manager per server process."""
    return KnowledgeBaseManager(config_manager.get_knowledge_base_path())


def main():
    """Main application entry point."""
    st.set_page_config(
        page_title="AI Campaign Planner",
        page_icon="📣",
        layout="wide",
        initial_sidebar_state="expanded"
    )

    st.title("📣 AI Campaign Planner")
    st.markdown("Turn a campaign brief into a grounded, scored ad campaign plan")

    config = config_manager.load_config()
    knowledge_base_manager = get_knowledge_base_manager()

    kb_status = knowledge_base_manager.get_status()
    if kb_status['error']:
        st.error("❌ **Knowledge Base Unavailable**")
        st.error(kb_status['error'])
        st.info("Set KNOWLEDGE_BASE_PATH to a valid knowledge base JSON file and restart the application.")
        st.stop()

    form_component = BriefForm()
    brief, submitted = form_component.render()

    if submitted:
        with st.spinner("🤖 AI is generating your campaign plan..."):
            try:
                controller = CampaignPlanController(knowledge_base_manager)
            except ValueError as e:
                st.error(f"❌ Configuration Error: {e}")
                st.stop()

            success, result, notification = controller.handle_request(brief)

        if success:
            st.success(f"✅ Generated plan for {result.plan.campaign_id}")
            st.session_state['plan_result'] = result
        else:
            logger.error(f"Plan generation failed: {notification.get('message')}")
            display_notification(notification)

    result = st.session_state.get('plan_result')
    if result is not None:
        PlanDisplayComponent().render(result)
        PlanExportComponent().render(result)

    # Display current configuration (for development)
    with st.expander("System Information"):
        col1, col2 = st.columns(2)

        with col1:
            st.write("**Generation:**")
            for key, value in config_manager.describe().items():
                st.write(f"{key}: {value}")
            st.write(f"Temperature: {config.temperature}")

        with col2:
            st.write("**Knowledge Base:**")
            st.write(f"Products: {kb_status['products']}")
            st.write(f"Ad Metrics: {kb_status['ad_metrics']}")
            st.write(f"Loaded At: {kb_status['loaded_at']}")


if __name__ == "__main__":
    main()
