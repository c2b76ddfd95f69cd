"""
Background solve jobs.

SolveJobManager runs solves on a thread pool and tracks them by job id:

    job_id = manager.start_solve("term-1")
    manager.get_solve_status(job_id)   # poll
    manager.cancel_solve(job_id)       # optional
    manager.get_result(job_id)         # best so far while running, final once finished

Only one job per term may be pending or running at a time. Each job owns its
Timetable and orchestrator; the manager's lock only guards the job registry.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from .assembler import ProblemAssembler
from .config import SolverConfig
from .data.models import ProblemInput
from .domain import HardSoftScore
from .output import TimetableSolution, UnresolvedAssignmentError, build_solution
from .output.schema import LessonRecord
from .search import SolverOrchestrator, SolverResult

logger = logging.getLogger(__name__)

# Finished jobs older than this are dropped by cleanup_stale_jobs()
JOB_TTL_SECONDS = 30 * 60

ProblemSource = Callable[[str], ProblemInput]
SolutionSink = Callable[[TimetableSolution], None]


# =============================================================================
# Errors
# =============================================================================

class SolveJobError(Exception):
    """Base class for job manager errors."""
    pass


class SolveAlreadyRunningError(SolveJobError):
    """Raised when a term already has a pending or running job."""

    def __init__(self, term_id: str, job_id: str):
        self.term_id = term_id
        self.job_id = job_id
        super().__init__(f"Solver is already running for term {term_id} (job {job_id})")


class JobNotFoundError(SolveJobError):
    """Raised for unknown or expired job ids."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"No solve job with id {job_id}")


class JobNotFinishedError(SolveJobError):
    """Raised when asking for the result of a job that has no result yet."""

    def __init__(self, job_id: str, state: JobState):
        self.job_id = job_id
        self.state = state
        super().__init__(f"No solution available for job {job_id} ({state.value})")


# =============================================================================
# Job State
# =============================================================================

class JobState(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_active(self) -> bool:
        return self in (JobState.PENDING, JobState.RUNNING)


@dataclass(frozen=True)
class JobStatus:
    """Point-in-time view of a job, safe to hand to other threads."""
    job_id: str
    term_id: str
    state: JobState
    hard_score: Optional[int] = None
    soft_score: Optional[int] = None
    error: Optional[str] = None

    @property
    def score(self) -> Optional[str]:
        if self.hard_score is None or self.soft_score is None:
            return None
        return f"{self.hard_score}hard/{self.soft_score}soft"


@dataclass
class SolveJob:
    job_id: str
    term_id: str
    config: SolverConfig
    orchestrator: SolverOrchestrator
    state: JobState = JobState.PENDING
    best_score: Optional[HardSoftScore] = None
    result: Optional[SolverResult] = None
    solution: Optional[TimetableSolution] = None
    error: Optional[str] = None
    created_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None
    future: Optional[Future] = None


# =============================================================================
# Job Manager
# =============================================================================

class SolveJobManager:
    """
    Runs solves in the background, one job per term at a time.

    Usage:
        manager = SolveJobManager(problem_source=load_term, solution_sink=save_lessons)
        job_id = manager.start_solve("term-1")
        status = manager.get_solve_status(job_id)

    problem_source(term_id) returns the term's ProblemInput snapshot.
    solution_sink(solution) persists a finished solution; it is called from
    the worker thread and only for solutions whose lessons all resolved.
    """

    def __init__(
        self,
        problem_source: ProblemSource,
        solution_sink: Optional[SolutionSink] = None,
        config: Optional[SolverConfig] = None,
        max_workers: int = 2,
        job_ttl_seconds: float = JOB_TTL_SECONDS,
    ):
        self.problem_source = problem_source
        self.solution_sink = solution_sink
        self.config = config or SolverConfig()
        self.job_ttl_seconds = job_ttl_seconds

        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="solve")
        self._lock = threading.Lock()
        self._jobs: dict[str, SolveJob] = {}
        # term id -> job id of its pending/running job ("" while being assembled)
        self._active_terms: dict[str, str] = {}

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def start_solve(self, term_id: str, config: Optional[SolverConfig] = None) -> str:
        """
        Load, assemble and schedule a solve for a term.

        Loading and assembly run in the calling thread, so their errors reach
        the caller before any job exists.

        Returns:
            The new job's id

        Raises:
            SolveAlreadyRunningError: If the term has a pending or running job
            ProblemAssemblyError: If the problem is infeasible before solving
        """
        config = config or self.config

        with self._lock:
            running = self._active_terms.get(term_id)
            if running is not None:
                raise SolveAlreadyRunningError(term_id, running)
            self._active_terms[term_id] = ""

        try:
            problem = self.problem_source(term_id)
            timetable = ProblemAssembler(problem, config).assemble()
        except Exception:
            with self._lock:
                self._active_terms.pop(term_id, None)
            raise

        job_id = str(uuid.uuid4())
        job = SolveJob(
            job_id=job_id,
            term_id=term_id,
            config=config,
            orchestrator=SolverOrchestrator(
                timetable,
                config,
                on_best_solution=lambda score: self._on_best_solution(job_id, score),
            ),
        )

        with self._lock:
            self._jobs[job_id] = job
            self._active_terms[term_id] = job_id
            job.future = self._executor.submit(self._run, job)

        logger.info("Started solve job %s for term %s", job_id, term_id)
        return job_id

    def get_solve_status(self, job_id: str) -> JobStatus:
        """
        Current state and best score of a job.

        Raises:
            JobNotFoundError: If the job is unknown or expired
        """
        with self._lock:
            job = self._get_job(job_id)
            score = job.best_score
            return JobStatus(
                job_id=job.job_id,
                term_id=job.term_id,
                state=job.state,
                hard_score=score.hard if score is not None else None,
                soft_score=score.soft if score is not None else None,
                error=job.error,
            )

    def cancel_solve(self, job_id: str) -> None:
        """
        Ask a job to stop; the best timetable found so far becomes its result.

        Cancelling a finished job does nothing.

        Raises:
            JobNotFoundError: If the job is unknown or expired
        """
        with self._lock:
            job = self._get_job(job_id)
            if not job.state.is_active:
                return
            if job.state == JobState.PENDING and job.future is not None and job.future.cancel():
                # Never started; nothing to report
                self._finish(job, JobState.CANCELLED)
                logger.info("Cancelled pending solve job %s", job_id)
                return

        job.orchestrator.cancel()
        logger.info("Cancellation requested for solve job %s", job_id)

    def get_result(self, job_id: str) -> TimetableSolution:
        """
        Solution of a job; its lessons are ordered LessonRecords.

        While the job runs this is a provisional solution (status SOLVING)
        built from the best assignment found so far. It is never passed to
        the solution sink.

        Raises:
            JobNotFoundError: If the job is unknown or expired
            JobNotFinishedError: If the job has no solution, e.g. it failed,
                is pending or has not finished construction
        """
        with self._lock:
            job = self._get_job(job_id)
            if job.solution is not None:
                return job.solution
            if job.state != JobState.RUNNING:
                raise JobNotFinishedError(job_id, job.state)
            orchestrator, config = job.orchestrator, job.config

        # Built outside the lock; the worker thread keeps searching meanwhile
        provisional = orchestrator.current_best()
        if provisional is None:
            raise JobNotFinishedError(job_id, JobState.RUNNING)
        return build_solution(provisional, config)

    def get_lesson_records(self, job_id: str) -> list[LessonRecord]:
        """Ordered lesson records of a job, provisional while it runs."""
        return self.get_result(job_id).lessons

    def wait(self, job_id: str, timeout: Optional[float] = None) -> JobStatus:
        """Block until a job finishes (or the timeout passes) and return its status."""
        with self._lock:
            future = self._get_job(job_id).future
        if future is not None and not future.cancelled():
            future.result(timeout=timeout)
        return self.get_solve_status(job_id)

    def cleanup_stale_jobs(self) -> int:
        """
        Drop finished jobs older than the TTL.

        Returns:
            Number of jobs removed
        """
        now = time.monotonic()
        with self._lock:
            stale = [
                job_id for job_id, job in self._jobs.items()
                if job.finished_at is not None and now - job.finished_at > self.job_ttl_seconds
            ]
            for job_id in stale:
                del self._jobs[job_id]

        if stale:
            logger.info("Removed %d stale solve jobs", len(stale))
        return len(stale)

    def shutdown(self, wait: bool = True) -> None:
        """Cancel every active job and stop the worker pool."""
        with self._lock:
            active = [job for job in self._jobs.values() if job.state.is_active]
        for job in active:
            self.cancel_solve(job.job_id)
        self._executor.shutdown(wait=wait)

    # -------------------------------------------------------------------------
    # Worker
    # -------------------------------------------------------------------------

    def _get_job(self, job_id: str) -> SolveJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def _finish(self, job: SolveJob, state: JobState, error: Optional[str] = None) -> None:
        """Record a final state; caller holds the lock."""
        job.state = state
        job.error = error
        job.finished_at = time.monotonic()
        if self._active_terms.get(job.term_id) == job.job_id:
            del self._active_terms[job.term_id]

    def _on_best_solution(self, job_id: str, score: HardSoftScore) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None:
                job.best_score = score

    def _run(self, job: SolveJob) -> None:
        with self._lock:
            job.state = JobState.RUNNING

        try:
            result = job.orchestrator.solve()
            solution = build_solution(result, job.config)
            if self.solution_sink is not None:
                self.solution_sink(solution)
        except UnresolvedAssignmentError as e:
            logger.error("Solve job %s produced an unusable timetable: %s", job.job_id, e)
            with self._lock:
                self._finish(job, JobState.FAILED, str(e))
            return
        except Exception as e:
            logger.exception("Solve job %s failed", job.job_id)
            with self._lock:
                self._finish(job, JobState.FAILED, str(e))
            return

        with self._lock:
            job.result = result
            job.solution = solution
            job.best_score = result.score
            self._finish(job, JobState.CANCELLED if result.cancelled else JobState.SUCCEEDED)

        logger.info(
            "Solve job %s for term %s finished (%s) with %s",
            job.job_id, job.term_id, job.state.value, result.score,
        )
