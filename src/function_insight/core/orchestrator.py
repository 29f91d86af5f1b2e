"""Function intelligence pipeline.

Per request::

    CacheCheck -> hit: return the stored record unchanged
               -> miss: ParallelAnalysis -> Synthesis -> Persist -> return

ParallelAnalysis runs the history and structural stages concurrently and
scores once both are in. History failures degrade (modification frequency
becomes 0); structural failures abort with AnalysisUnavailableError.
"""

from __future__ import annotations

import json
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path, PurePosixPath
from typing import Callable, Optional

from ..cache import ParseCache, is_valid
from ..config import AnalysisConfig
from ..exceptions import (
    AnalysisCancelledError,
    AnalysisError,
    AnalysisUnavailableError,
    CacheError,
    RepositoryAccessError,
    StageTimeoutError,
)
from ..logging_config import get_logger
from ..models import DegradationNote, FunctionIntelligence, FunctionRef
from ..scanning import ParserRegistry, SourceExtractor, SourceTree, WorkingTree, default_registry
from ..scoring import gather_metrics, score
from ..storage import (
    CALLGRAPHS,
    DIFFS,
    BlobStore,
    IntelligenceDB,
    list_history,
    load_current,
    save_intelligence,
)
from ..synthesis import (
    ComplexityInputs,
    LLMService,
    NarrativeInputs,
    StructuralInputs,
    SynthesisClient,
    create_llm_service,
)
from ..temporal import (
    CommitRecord,
    GitReader,
    HistoryCollector,
    RevisionTree,
    VersionControlReader,
)
from .fingerprint import compute_fingerprint, repository_id
from .structure import StructuralAnalyzer, StructuralResult

logger = get_logger(__name__)

# How often a blocked stage wait re-checks the cancel event
_POLL_SECONDS = 0.05


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FunctionIntelligencePipeline:
    """Coordinates the analysis stages for one repository at a time.

    Args:
        config: Analysis configuration
        llm: LLM service (default: built from config)
        registry: Parser registry (default: Python + JavaScript/TypeScript)
        reader: Version-control reader (default: git CLI)
        clock: Source of "now" for cache validity and timestamps
        sleep: Used between LLM retries
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        llm: Optional[LLMService] = None,
        registry: Optional[ParserRegistry] = None,
        reader: Optional[VersionControlReader] = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or AnalysisConfig()
        self.registry = registry or default_registry()
        self.reader = reader or GitReader(max_commits=self.config.git_max_commits)
        self.clock = clock
        self._llm = llm
        self._sleep = sleep

    # ── public operations ─────────────────────────────────────────

    def analyze(
        self,
        repository_root: str | Path,
        file_path: str,
        function_name: str,
        commit_hash: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> FunctionIntelligence:
        """Analyze one function, serving a valid stored result when there is one.

        Raises:
            AnalysisUnavailableError: The structural stage failed
            AnalysisCancelledError: ``cancel_event`` was set mid-analysis
        """
        root = Path(repository_root).resolve()
        if not root.is_dir():
            raise AnalysisUnavailableError(f"repository root not found: {repository_root}")
        rel_path = self._relative_path(root, file_path)
        store_dir = self.config.resolve_store_dir(root)

        revision = self._resolve_revision(root, commit_hash)
        fingerprint = compute_fingerprint(root, rel_path, revision if commit_hash else None)
        ref = FunctionRef(
            repository_id=repository_id(root),
            file_path=rel_path,
            function_name=function_name,
            fingerprint=fingerprint,
        )

        # ── CacheCheck ────────────────────────────────────────────
        cached = self._cache_lookup(store_dir, ref)
        if cached is not None:
            logger.info(f"Cache hit for {ref.function_key} ({fingerprint})")
            return cached
        logger.info(f"Cache miss for {ref.function_key}; analyzing")

        notes: list[DegradationNote] = []
        self._check_cancel(cancel_event, "parallel analysis")

        # ── ParallelAnalysis ──────────────────────────────────────
        # With a commit, structure and history are both read at that commit
        source: SourceTree = (
            RevisionTree(self.reader, root, revision) if commit_hash else WorkingTree(root)
        )
        structural, commits = self._parallel_analysis(
            root, source, store_dir, rel_path, function_name, revision, notes, cancel_event
        )
        metrics = gather_metrics(structural.target, commits, structural.upstream)
        stability = score(metrics, self.config.ranges)
        logger.debug(f"{ref.function_key}: score={stability.score:.3f} ({stability.risk_level.value})")

        # ── Synthesis ─────────────────────────────────────────────
        self._check_cancel(cancel_event, "synthesis")
        synthesis = SynthesisClient(
            self._llm_service(),
            token_budget=self.config.token_budget,
            max_attempts=self.config.llm_max_attempts,
            backoff_initial=self.config.llm_backoff_initial_seconds,
            backoff_max=self.config.llm_backoff_max_seconds,
            sleep=self._sleep,
            clock=self.clock,
        )
        record = synthesis.synthesize(
            NarrativeInputs(commits=tuple(commits)),
            StructuralInputs(
                ref=ref,
                params=structural.target.params,
                upstream=structural.upstream,
                downstream=structural.downstream,
                impact_layers=structural.impact_layers,
            ),
            ComplexityInputs(metrics=metrics, stability=stability),
        )
        record = replace(record, degradations=tuple(notes) + record.degradations)

        # ── Persist ───────────────────────────────────────────────
        self._check_cancel(cancel_event, "persist")
        record = self._persist(store_dir, record, structural, commits)

        for note in record.degradations:
            logger.warning(f"Degraded [{note.stage}] {note.error_type}: {note.reason}")
        return record

    def history(
        self,
        repository_root: str | Path,
        function_name: str,
        file_path: Optional[str] = None,
    ) -> list[FunctionIntelligence]:
        """Every stored analysis of a function, oldest first.

        Raises:
            CacheError: If the store exists but cannot be read
        """
        root = Path(repository_root).resolve()
        store_dir = self.config.resolve_store_dir(root)
        if not (store_dir / "intelligence.db").exists():
            return []
        rel_path = self._relative_path(root, file_path) if file_path else None
        with IntelligenceDB(store_dir) as db:
            return list_history(db.conn, repository_id(root), function_name, rel_path)

    # ── stages ────────────────────────────────────────────────────

    def _parallel_analysis(
        self,
        root: Path,
        source: SourceTree,
        store_dir: Path,
        rel_path: str,
        function_name: str,
        revision: str,
        notes: list[DegradationNote],
        cancel_event: Optional[threading.Event],
    ) -> tuple[StructuralResult, list[CommitRecord]]:
        parse_cache = ParseCache(
            str(store_dir / "parse-cache"), enabled=self.config.parse_cache_enabled
        )
        extractor = SourceExtractor(
            self.registry,
            parse_cache=parse_cache,
            max_workers=self.config.workers,
            max_files=self.config.max_files,
        )
        collector = HistoryCollector(self.registry, self.reader)
        analyzer = StructuralAnalyzer(extractor)

        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="function-insight")
        try:
            history_future = executor.submit(
                collector.collect, root, rel_path, function_name, revision
            )
            structure_future = executor.submit(analyzer.analyze, source, rel_path, function_name)
            deadline = time.monotonic() + self.config.stage_timeout_seconds

            try:
                structural = self._await(structure_future, "structure", deadline, cancel_event)
            except AnalysisCancelledError:
                history_future.cancel()
                raise
            except AnalysisError as e:
                history_future.cancel()
                logger.error(f"Structural stage failed: {e}")
                raise AnalysisUnavailableError(str(e), e) from e

            try:
                commits = self._await(history_future, "history", deadline, cancel_event)
            except AnalysisCancelledError:
                raise
            except AnalysisError as e:
                notes.append(DegradationNote.from_exception("history", e))
                commits = []
        finally:
            # Do not block on a stage that overran its timeout
            executor.shutdown(wait=False, cancel_futures=True)
            parse_cache.close()

        for error in structural.skipped:
            notes.append(DegradationNote.from_exception("structure", error))
        return structural, commits

    def _await(
        self,
        future: Future,
        stage: str,
        deadline: float,
        cancel_event: Optional[threading.Event],
    ):
        while True:
            self._check_cancel(cancel_event, stage)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                future.cancel()
                raise StageTimeoutError(stage, self.config.stage_timeout_seconds)
            try:
                return future.result(timeout=min(remaining, _POLL_SECONDS))
            except FutureTimeoutError:
                continue

    def _persist(
        self,
        store_dir: Path,
        record: FunctionIntelligence,
        structural: StructuralResult,
        commits: list[CommitRecord],
    ) -> FunctionIntelligence:
        ref = record.ref
        notes: list[DegradationNote] = []

        blobs = BlobStore(store_dir)
        keys: list[str] = []
        try:
            for commit in commits:
                if commit.diff:
                    keys.append(blobs.put(ref.repository_id, DIFFS, ref.function_key, commit.diff))
            snapshot = json.dumps(structural.snapshot(), indent=2, sort_keys=True)
            keys.append(blobs.put(ref.repository_id, CALLGRAPHS, ref.function_key, snapshot))
        except CacheError as e:
            notes.append(DegradationNote.from_exception("persist", e))

        record = replace(
            record,
            artifact_keys=tuple(dict.fromkeys(keys)),
            degradations=record.degradations + tuple(notes),
        )

        try:
            with IntelligenceDB(store_dir) as db:
                save_intelligence(db.conn, record)
        except CacheError as e:
            record = record.with_degradations((DegradationNote.from_exception("persist", e),))
        return record

    # ── helpers ───────────────────────────────────────────────────

    def _cache_lookup(self, store_dir: Path, ref: FunctionRef) -> Optional[FunctionIntelligence]:
        try:
            with IntelligenceDB(store_dir) as db:
                record = load_current(db.conn, ref.repository_id, ref.function_key, ref.fingerprint)
        except CacheError as e:
            logger.warning(f"Store unavailable, forcing cache miss: {e}")
            return None
        if record is None:
            return None
        ttl = timedelta(seconds=self.config.cache_ttl_seconds)
        if is_valid(record, self.clock(), ref.fingerprint, ttl):
            return record
        logger.debug(f"Stored analysis for {ref.function_key} is stale")
        return None

    def _resolve_revision(self, root: Path, commit_hash: Optional[str]) -> str:
        if not commit_hash:
            return "HEAD"
        resolve = getattr(self.reader, "resolve_revision", None)
        if resolve is None:
            return commit_hash
        try:
            return resolve(root, commit_hash)
        except RepositoryAccessError as e:
            logger.debug(f"Cannot resolve {commit_hash}: {e}")
            return commit_hash

    def _llm_service(self) -> LLMService:
        if self._llm is None:
            self._llm = create_llm_service(self.config)
        return self._llm

    @staticmethod
    def _relative_path(root: Path, file_path: str) -> str:
        path = Path(file_path)
        if path.is_absolute():
            try:
                path = path.resolve().relative_to(root)
            except ValueError:
                raise AnalysisUnavailableError(f"{file_path} is outside {root}")
        return PurePosixPath(path.as_posix()).as_posix()

    @staticmethod
    def _check_cancel(cancel_event: Optional[threading.Event], stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelledError(stage)
