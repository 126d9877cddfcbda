"""awaitless FastAPI Server"""
from .client import AwaitlessClient, StaleSourceError
from .models import AnalysisReport, FixReport, FunctionReport

__all__ = ['AwaitlessClient', 'StaleSourceError', 'AnalysisReport', 'FixReport', 'FunctionReport']
