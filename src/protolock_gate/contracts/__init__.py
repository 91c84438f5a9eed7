from .models import CheckReport, ReportStatus

__all__ = ["CheckReport", "ReportStatus"]
