"""
Tests for error classification, the fallback runner and user notifications.
"""

import unittest
from unittest.mock import Mock

import httpx
import openai

from business_logic.error_handler import (
    ErrorHandler, ErrorCategory, ErrorSeverity, NonJSONContentError, PlanGenerationError
)
from business_logic.plan_validator import ValidationError, ValidationIssue, ValidationSeverity
from data.parsers import KnowledgeBaseError

REQUEST = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")


class TestRunWithFallback(unittest.TestCase):
    """Test cases for the two-attempt policy runner."""

    def setUp(self):
        """Set up test fixtures."""
        self.handler = ErrorHandler()

    def test_primary_success_skips_fallback(self):
        primary = Mock(return_value="primary result")
        fallback = Mock(return_value="fallback result")

        outcome = self.handler.run_with_fallback([("primary", primary), ("fallback", fallback)], "test")

        self.assertTrue(outcome.success)
        self.assertEqual(outcome.result, "primary result")
        self.assertEqual(outcome.attempts_made, 1)
        fallback.assert_not_called()

    def test_fallback_runs_once_after_primary_failure(self):
        primary = Mock(side_effect=openai.APITimeoutError(request=REQUEST))
        fallback = Mock(return_value="fallback result")

        outcome = self.handler.run_with_fallback([("primary", primary), ("fallback", fallback)], "test")

        self.assertTrue(outcome.success)
        self.assertEqual(outcome.result, "fallback result")
        self.assertEqual(outcome.attempt_label, "fallback")
        self.assertEqual(outcome.attempts_made, 2)
        primary.assert_called_once()
        fallback.assert_called_once()

    def test_both_fail_reports_last_error(self):
        last_error = PlanGenerationError("Empty response from model")
        primary = Mock(side_effect=openai.APIConnectionError(request=REQUEST))
        fallback = Mock(side_effect=last_error)

        outcome = self.handler.run_with_fallback([("primary", primary), ("fallback", fallback)], "test")

        self.assertFalse(outcome.success)
        self.assertIsNone(outcome.result)
        self.assertIs(outcome.error, last_error)
        self.assertEqual(outcome.error_info.category, ErrorCategory.GENERATION_ERROR)
        self.assertEqual(outcome.attempts_made, 2)

    def test_no_attempts(self):
        outcome = self.handler.run_with_fallback([], "test")

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.attempts_made, 0)
        self.assertEqual(outcome.error_info.category, ErrorCategory.SYSTEM_ERROR)


class TestClassifyError(unittest.TestCase):
    """Test cases for ErrorHandler.classify_error."""

    def setUp(self):
        """Set up test fixtures."""
        self.handler = ErrorHandler()

    def test_timeout_is_retryable_network_error(self):
        info = self.handler.classify_error(openai.APITimeoutError(request=REQUEST), "generation")

        self.assertEqual(info.category, ErrorCategory.NETWORK_ERROR)
        self.assertTrue(info.retry_possible)

    def test_authentication_error_is_critical(self):
        response = httpx.Response(401, request=REQUEST)
        error = openai.AuthenticationError("Invalid API key", response=response, body=None)

        info = self.handler.classify_error(error, "generation")

        self.assertEqual(info.category, ErrorCategory.API_ERROR)
        self.assertEqual(info.severity, ErrorSeverity.CRITICAL)
        self.assertFalse(info.retry_possible)

    def test_rate_limit(self):
        response = httpx.Response(429, request=REQUEST)
        error = openai.RateLimitError("Too many requests", response=response, body=None)

        info = self.handler.classify_error(error, "generation")

        self.assertIn("rate limit", info.user_message)
        self.assertTrue(info.retry_possible)

    def test_non_json_content(self):
        info = self.handler.classify_error(NonJSONContentError("Model returned non-JSON content"), "parse")

        self.assertEqual(info.category, ErrorCategory.GENERATION_ERROR)
        self.assertIn("non-JSON", info.message)

    def test_generation_error_keeps_attached_info(self):
        attached = self.handler.classify_error(openai.APITimeoutError(request=REQUEST), "generation")
        error = PlanGenerationError("AI plan generation failed", error_info=attached)

        self.assertIs(self.handler.classify_error(error, "controller"), attached)

    def test_knowledge_base_errors(self):
        missing = self.handler.classify_error(FileNotFoundError("kb.json"), "load")
        corrupt = self.handler.classify_error(KnowledgeBaseError("bad"), "load")

        self.assertEqual(missing.category, ErrorCategory.DATA_ERROR)
        self.assertEqual(corrupt.category, ErrorCategory.DATA_ERROR)
        self.assertIn("corrupted", corrupt.user_message)

    def test_undecodable_knowledge_base(self):
        error = KnowledgeBaseError("Malformed knowledge base JSON in kb.json: 'utf-8' codec can't decode byte 0xff")

        info = self.handler.classify_error(error, "load")

        self.assertEqual(self.handler.create_user_notification(info)['title'], "Knowledge Base Error")

    def test_validation_error(self):
        issue = ValidationIssue(ValidationSeverity.ERROR, "must be greater than 0", "budget")
        info = self.handler.classify_error(ValidationError("Brief", [issue]), "brief")

        self.assertEqual(info.category, ErrorCategory.VALIDATION_ERROR)
        self.assertEqual(info.user_message, "Brief validation failed: budget: must be greater than 0")

    def test_missing_api_key(self):
        info = self.handler.classify_error(ValueError("GROQ_API_KEY not set. Please set it."), "init")

        self.assertEqual(info.category, ErrorCategory.API_ERROR)
        self.assertEqual(info.severity, ErrorSeverity.CRITICAL)

    def test_unexpected_error(self):
        info = self.handler.classify_error(RuntimeError("boom"), "anything")

        self.assertEqual(info.category, ErrorCategory.SYSTEM_ERROR)


class TestNotificationsAndHistory(unittest.TestCase):
    """Test cases for notifications and error statistics."""

    def setUp(self):
        """Set up test fixtures."""
        self.handler = ErrorHandler()

    def test_user_notification(self):
        info = self.handler.classify_error(NonJSONContentError("Model returned non-JSON content"), "parse")

        notification = self.handler.create_user_notification(info)

        self.assertEqual(notification['type'], 'error')
        self.assertEqual(notification['title'], 'Plan Generation Error')
        self.assertFalse(notification['dismissible'])
        self.assertIn('action', notification)
        self.assertIn('technical_details', notification)

    def test_history_is_bounded(self):
        info = self.handler.classify_error(RuntimeError("boom"), "loop")
        for _ in range(self.handler.max_history + 20):
            self.handler.log_error(info, "loop")

        self.assertEqual(len(self.handler.error_history), self.handler.max_history)

    def test_statistics(self):
        self.assertEqual(self.handler.get_error_statistics(), {'total_errors': 0})

        self.handler.log_error(self.handler.classify_error(RuntimeError("boom"), "x"), "x")
        stats = self.handler.get_error_statistics()

        self.assertEqual(stats['total_errors'], 1)
        self.assertEqual(stats['category_breakdown'], {'system_error': 1})


if __name__ == '__main__':
    unittest.main()
