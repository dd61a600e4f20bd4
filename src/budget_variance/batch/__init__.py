"""
Batch processing module for running many variance analyses.
"""

from .batch_processor import AnalysisJob, BatchConfig, BatchProcessor, ProcessingResult

__all__ = ['AnalysisJob', 'BatchConfig', 'BatchProcessor', 'ProcessingResult']
