"""Tests for Celery tasks."""

from unittest.mock import MagicMock, patch

import pytest


# =============================================================================
# Invoice Run Task Tests
# =============================================================================


class TestGenerateMonthlyInvoicesTask:
    """Tests for billing.generate_monthly_invoices task."""

    def test_success_returns_counts(self):
        mock_session = MagicMock()
        summary = {
            "created_count": 3,
            "invoices": [],
            "skipped": [{"subscriber_id": "x", "reason": "already_billed"}],
            "failures": [],
        }

        with patch("isp_billing.tasks.billing.SessionLocal", return_value=mock_session):
            with patch(
                "isp_billing.tasks.billing.billing_automation_service.generate_monthly_invoices",
                return_value=summary,
            ) as mock_run:
                with patch("isp_billing.tasks.billing.observe_job") as mock_observe:
                    from isp_billing.tasks.billing import generate_monthly_invoices

                    result = generate_monthly_invoices()

        mock_run.assert_called_once_with(mock_session)
        assert result == {"created_count": 3, "skipped": 1, "failures": 0}
        mock_session.close.assert_called_once()
        assert mock_observe.call_args[0][:2] == ("generate_monthly_invoices", "success")

    def test_failures_mark_run_partial(self):
        mock_session = MagicMock()
        summary = {
            "created_count": 1,
            "invoices": [],
            "skipped": [],
            "failures": [{"subscriber_id": "x", "error": "boom"}],
        }

        with patch("isp_billing.tasks.billing.SessionLocal", return_value=mock_session):
            with patch(
                "isp_billing.tasks.billing.billing_automation_service.generate_monthly_invoices",
                return_value=summary,
            ):
                with patch("isp_billing.tasks.billing.observe_job") as mock_observe:
                    from isp_billing.tasks.billing import generate_monthly_invoices

                    result = generate_monthly_invoices()

        assert result["failures"] == 1
        assert mock_observe.call_args[0][1] == "partial"

    def test_exception_rolls_back(self):
        """Test exception triggers rollback."""
        mock_session = MagicMock()

        with patch("isp_billing.tasks.billing.SessionLocal", return_value=mock_session):
            with patch(
                "isp_billing.tasks.billing.billing_automation_service.generate_monthly_invoices",
                side_effect=Exception("Billing error"),
            ):
                from isp_billing.tasks.billing import generate_monthly_invoices

                with pytest.raises(Exception, match="Billing error"):
                    generate_monthly_invoices()

        mock_session.rollback.assert_called_once()
        mock_session.close.assert_called_once()


# =============================================================================
# Suspension Run Task Tests
# =============================================================================


class TestRunSuspensionCycleTask:
    """Tests for billing.run_suspension_cycle task."""

    def test_off_day_is_skipped(self):
        mock_session = MagicMock()

        with patch("isp_billing.tasks.billing.SessionLocal", return_value=mock_session):
            with patch(
                "isp_billing.tasks.billing.suspension_service.run_suspension_cycle",
                return_value={"not_suspension_day": True, "suspended": [], "skipped": []},
            ):
                with patch("isp_billing.tasks.billing.observe_job") as mock_observe:
                    from isp_billing.tasks.billing import run_suspension_cycle

                    result = run_suspension_cycle()

        assert result == {"not_suspension_day": True}
        assert mock_observe.call_args[0][1] == "skipped"
        mock_session.close.assert_called_once()

    def test_counts_suspended_and_failed(self):
        mock_session = MagicMock()
        summary = {
            "not_suspension_day": False,
            "suspended": [{"success": True}, {"success": False}, {"success": True}],
            "skipped": [{"reason": "configuration_gap"}],
        }

        with patch("isp_billing.tasks.billing.SessionLocal", return_value=mock_session):
            with patch(
                "isp_billing.tasks.billing.suspension_service.run_suspension_cycle",
                return_value=summary,
            ) as mock_run:
                with patch("isp_billing.tasks.billing.observe_job") as mock_observe:
                    from isp_billing.tasks.billing import run_suspension_cycle

                    result = run_suspension_cycle()

        mock_run.assert_called_once_with(mock_session)
        assert result == {"suspended": 2, "failed": 1, "skipped": 1}
        assert mock_observe.call_args[0][1] == "partial"

    def test_exception_closes_session(self):
        """Test exception still closes session."""
        mock_session = MagicMock()

        with patch("isp_billing.tasks.billing.SessionLocal", return_value=mock_session):
            with patch(
                "isp_billing.tasks.billing.suspension_service.run_suspension_cycle",
                side_effect=RuntimeError("router down"),
            ):
                from isp_billing.tasks.billing import run_suspension_cycle

                with pytest.raises(RuntimeError):
                    run_suspension_cycle()

        mock_session.rollback.assert_called_once()
        mock_session.close.assert_called_once()
