"""
Batch runner for variance analyses across many organization/board/period jobs.
Supports parallel processing, error isolation, and progress tracking.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from budget_variance.analysis.engine import VarianceEngine
from budget_variance.cache.result_cache import CachedAnalyzer, ResultCache, cache_key
from budget_variance.config.settings import Settings
from budget_variance.data.models import ActualLine, AnalysisResult, BudgetLine, HistoricalVariance
from budget_variance.exceptions import VarianceEngineError

logger = logging.getLogger(__name__)


@dataclass
class AnalysisJob:
    """One analysis to run: the lines for a single organization, board and period."""
    organization_id: str
    board_id: Union[int, str]
    period: str
    budget_lines: Sequence[BudgetLine]
    actual_lines: Sequence[ActualLine] = field(default_factory=list)
    historical: Optional[Mapping[str, Sequence[HistoricalVariance]]] = None

    @property
    def cache_key(self) -> str:
        return cache_key(self.organization_id, self.board_id, self.period)


@dataclass
class ProcessingResult:
    """Result of processing a single job."""
    job_key: str
    success: bool
    processing_time: float
    result: Optional[AnalysisResult] = None
    cache_hit: bool = False
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    critical_count: Optional[int] = None
    insight_count: Optional[int] = None


@dataclass
class BatchConfig:
    """Configuration for batch processing."""
    max_workers: int = 4
    continue_on_error: bool = True
    force_refresh: bool = False
    options: Optional[Any] = None
    timeout_minutes: Optional[int] = 30
    progress_callback: Optional[Callable[[int, int, str], None]] = None


class BatchProcessor:
    """
    Runs analysis jobs in parallel through a shared result cache.
    Provides error isolation, progress tracking, and a processing summary.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 engine: Optional[VarianceEngine] = None,
                 cache: Optional[ResultCache] = None):
        self.settings = settings or Settings()
        self.logger = logging.getLogger(__name__)
        self.engine = engine or VarianceEngine(settings=self.settings)
        self.cache = cache or ResultCache.from_settings(self.settings)
        self.analyzer = CachedAnalyzer(self.engine, self.cache)

    def default_config(self) -> BatchConfig:
        """BatchConfig using the configured worker count."""
        return BatchConfig(max_workers=self.settings.max_workers)

    def process_jobs(self, jobs: Sequence[AnalysisJob],
                     config: Optional[BatchConfig] = None) -> Dict[str, Any]:
        """
        Run a set of analysis jobs.

        Args:
            jobs: Jobs to run
            config: Batch processing configuration

        Returns:
            Dictionary containing processing results and summary
        """
        config = config or self.default_config()
        start_time = time.time()

        if not jobs:
            self.logger.warning("No analysis jobs to process")
            return self._create_empty_result()

        self.logger.info(f"Starting batch of {len(jobs)} analyses with {config.max_workers} workers")
        results = self._process_jobs_parallel(list(jobs), config)

        processing_time = time.time() - start_time
        summary = self._generate_processing_summary(results, processing_time)

        self.logger.info(f"Batch processing completed in {processing_time:.2f}s")
        self.logger.info(f"Success rate: {summary['success_rate']:.1f}% "
                         f"({summary['successful_count']}/{summary['total_count']}), "
                         f"{summary['cache_hits']} cache hits")
        return summary

    def _process_jobs_parallel(self, jobs: List[AnalysisJob], config: BatchConfig) -> List[ProcessingResult]:
        results = []
        completed_count = 0
        total_count = len(jobs)

        with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            future_to_job = {executor.submit(self._process_single_job, job, config): job for job in jobs}
            timeout = config.timeout_minutes * 60 if config.timeout_minutes else None

            for future in as_completed(future_to_job, timeout=timeout):
                job = future_to_job[future]
                completed_count += 1

                try:
                    result = future.result()
                except Exception as e:
                    result = ProcessingResult(job_key=job.cache_key, success=False, processing_time=0.0,
                                              error_message=f"Unexpected error: {e}")
                results.append(result)

                if result.success:
                    self.logger.info(f"[{completed_count}/{total_count}] Analyzed {job.cache_key}"
                                     f"{' (cached)' if result.cache_hit else ''}")
                else:
                    self.logger.error(f"[{completed_count}/{total_count}] Failed to analyze "
                                      f"{job.cache_key}: {result.error_message}")
                    if not config.continue_on_error:
                        self.logger.error("Stopping batch processing due to error")
                        for remaining_future in future_to_job:
                            remaining_future.cancel()
                        break

                if config.progress_callback:
                    config.progress_callback(completed_count, total_count, job.cache_key)

        return results

    def _process_single_job(self, job: AnalysisJob, config: BatchConfig) -> ProcessingResult:
        start_time = time.time()
        key = job.cache_key

        try:
            cache_hit = not config.force_refresh and self.cache.exists(key)
            result = self.analyzer.analyze_period(
                job.organization_id, job.board_id, job.period,
                budget_loader=lambda: job.budget_lines,
                actual_loader=lambda: job.actual_lines,
                options=config.options,
                historical=job.historical,
                force_refresh=config.force_refresh,
            )
            return ProcessingResult(
                job_key=key,
                success=True,
                processing_time=time.time() - start_time,
                result=result,
                cache_hit=cache_hit,
                critical_count=result.summary.critical_count,
                insight_count=len(result.insights),
            )
        except VarianceEngineError as e:
            return ProcessingResult(job_key=key, success=False, processing_time=time.time() - start_time,
                                    error_message=str(e), error_code=e.code)

    def _generate_processing_summary(self, results: List[ProcessingResult],
                                     processing_time: float) -> Dict[str, Any]:
        total_count = len(results)
        successful_results = [r for r in results if r.success]
        failed_results = [r for r in results if not r.success]

        return {
            "timestamp": datetime.now().isoformat(),
            "total_count": total_count,
            "successful_count": len(successful_results),
            "failed_count": len(failed_results),
            "success_rate": (len(successful_results) / total_count * 100) if total_count > 0 else 0,
            "cache_hits": sum(1 for r in successful_results if r.cache_hit),
            "total_processing_time": processing_time,
            "average_processing_time": (sum(r.processing_time for r in results) / total_count
                                        if total_count > 0 else 0),
            "critical_accounts": sum(r.critical_count or 0 for r in successful_results),
            "results": results,
            "errors": self._summarize_errors(failed_results),
        }

    def _summarize_errors(self, failed_results: List[ProcessingResult]) -> Dict[str, List[Dict[str, str]]]:
        """Group failures by error code."""
        error_patterns: Dict[str, List[Dict[str, str]]] = {}
        for result in failed_results:
            category = result.error_code or "UNEXPECTED"
            error_patterns.setdefault(category, []).append({
                "job": result.job_key,
                "error": result.error_message or "Unknown error",
            })
        return error_patterns

    def _create_empty_result(self) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now().isoformat(),
            "total_count": 0,
            "successful_count": 0,
            "failed_count": 0,
            "success_rate": 0,
            "cache_hits": 0,
            "total_processing_time": 0,
            "average_processing_time": 0,
            "critical_accounts": 0,
            "results": [],
            "errors": {},
        }
