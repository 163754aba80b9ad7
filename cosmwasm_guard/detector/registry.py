"""
Detector Registry

Runs detectors against one AnalysisContext and returns their findings sorted
by severity (High first). The sort is stable: findings of equal severity keep
detector registration order, then each detector's own order.

When at least `parallel_threshold` detectors are selected they run on a
ThreadPoolExecutor; otherwise sequentially. Both paths produce the same order.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

from cosmwasm_guard.finding import Finding, Severity
from cosmwasm_guard.observability import get_logger

from .base import Detector
from .context import AnalysisContext

logger = get_logger(__name__)

DEFAULT_PARALLEL_THRESHOLD = 4


class DetectorRegistry:
    """
    Ordered collection of detectors.

    Registration is append-only; duplicate names are not rejected.

    Example:
        ```python
        registry = DetectorRegistry()
        registry.register_all(all_detectors())
        findings = registry.run_all(ctx)
        ```
    """

    def __init__(self, parallel_threshold: int | None = None, max_workers: int | None = None):
        if parallel_threshold is None:
            from cosmwasm_guard.config.settings import get_settings

            parallel_threshold = get_settings().parallel_threshold
        self.parallel_threshold = parallel_threshold
        self.max_workers = max_workers
        self._detectors: list[Detector] = []

    def register(self, detector: Detector) -> None:
        self._detectors.append(detector)

    def register_all(self, detectors: list[Detector]) -> None:
        self._detectors.extend(detectors)

    def list_detectors(self) -> list[tuple[str, str, Severity]]:
        """(name, description, default severity) per registered detector"""
        return [(d.name, d.description, d.severity) for d in self._detectors]

    @property
    def detectors(self) -> list[Detector]:
        return list(self._detectors)

    def __len__(self) -> int:
        return len(self._detectors)

    # ============================================================
    # Execution
    # ============================================================

    def run_all(self, ctx: AnalysisContext) -> list[Finding]:
        return self._run(self._detectors, ctx)

    def run_selected(self, names: list[str] | set[str], ctx: AnalysisContext) -> list[Finding]:
        """Run only detectors whose name is in `names`; unknown names are ignored"""
        wanted = set(names)
        return self._run([d for d in self._detectors if d.name in wanted], ctx)

    def _run(self, detectors: list[Detector], ctx: AnalysisContext) -> list[Finding]:
        if not detectors:
            return []

        if self.parallel_threshold > 0 and len(detectors) >= self.parallel_threshold:
            results = self._run_parallel(detectors, ctx)
        else:
            results = [(idx, detector.detect(ctx)) for idx, detector in enumerate(detectors)]

        # Registration order first, then stable severity sort
        results.sort(key=lambda item: item[0])
        findings = [finding for _, batch in results for finding in batch]
        findings.sort(key=lambda f: f.severity.rank)

        logger.debug("detectors_completed", detectors=len(detectors), findings=len(findings))
        return findings

    def _run_parallel(self, detectors: list[Detector], ctx: AnalysisContext) -> list[tuple[int, list[Finding]]]:
        results: list[tuple[int, list[Finding]]] = []
        lock = threading.Lock()

        def run_one(idx: int, detector: Detector) -> None:
            batch = detector.detect(ctx)
            with lock:
                results.append((idx, batch))

        workers = self.max_workers or min(len(detectors), 8)
        logger.debug("detectors_fan_out", detectors=len(detectors), workers=workers)

        # Leaving the context joins every task; .result() re-raises detector errors
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="detector") as executor:
            futures = [executor.submit(run_one, idx, detector) for idx, detector in enumerate(detectors)]
            for future in futures:
                future.result()

        return results

    @staticmethod
    def filter_by_severity(findings: list[Finding], min_severity: Severity) -> list[Finding]:
        """Keep findings at least as severe as `min_severity`"""
        return [f for f in findings if f.severity.rank <= min_severity.rank]
