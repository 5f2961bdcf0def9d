from .models import PreflightFinding, PreflightReport
from .gate import run_preflight

__all__ = ["PreflightFinding", "PreflightReport", "run_preflight"]
