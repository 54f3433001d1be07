from isp_billing.tasks.billing import generate_monthly_invoices, run_suspension_cycle

__all__ = ["generate_monthly_invoices", "run_suspension_cycle"]
