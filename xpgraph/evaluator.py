"""
evaluator.py — Run one formula per isolated child process.

    series = evaluate_formula(0, "Linear", "x => x * 2", xp_max=5)

In "process" mode every formula gets a fresh interpreter (spawn by default):
compile + sampling happen there under an address-space ceiling, and the parent
waits at most ``timeout`` seconds before killing it. "inline" mode runs the
same code in the calling thread, with no ceilings.

Only plain data crosses the pipe: the Series on success, or the compile error
message, which is re-raised here as FormulaCompileError.
"""

from __future__ import annotations

import multiprocessing
import os
from typing import Optional, Sequence, Tuple

from .domain import build_domain
from .errors import FormulaCompileError, FormulaLimitError, RequestLimitError
from .sampler import BatchResult, Series, build_batch, build_series
from .utils import setup_logger, truncate

logger = setup_logger(__name__)

SANDBOX_MODES = {"process", "inline"}


# ---------- child side ----------

def _apply_memory_limit(memory_mb: int) -> None:
    """Cap the child's address space (POSIX only)."""
    if not memory_mb or os.name != "posix":
        return
    import resource

    limit = int(memory_mb) * 1024 * 1024
    soft, hard = resource.getrlimit(resource.RLIMIT_AS)
    if hard != resource.RLIM_INFINITY:
        limit = min(limit, hard)
    resource.setrlimit(resource.RLIMIT_AS, (limit, hard))


def _series_worker(conn, index, name, source, xp_max, memory_mb, max_length) -> None:
    """Entry point of the child process. Always answers with a tagged tuple."""
    try:
        _apply_memory_limit(memory_mb)
        series = build_series(name, source, build_domain(xp_max), index=index, max_length=max_length)
        conn.send(("ok", series))
    except RequestLimitError as e:
        conn.send(("limit", str(e)))
    except FormulaCompileError as e:
        conn.send(("compile_error", str(e)))
    except MemoryError:
        conn.send(("resources", "out of memory"))
    finally:
        conn.close()


# ---------- parent side ----------

def _run_in_child(
    index: int,
    name: str,
    source: str,
    xp_max: int,
    timeout: float,
    memory_mb: int,
    start_method: str,
    max_length: Optional[int],
) -> Series:
    ctx = multiprocessing.get_context(start_method)
    recv_conn, send_conn = ctx.Pipe(duplex=False)
    proc = ctx.Process(
        target=_series_worker,
        args=(send_conn, index, name, source, xp_max, memory_mb, max_length),
        daemon=True,
    )
    proc.start()
    # Parent keeps only the receiving end so EOF shows up if the child dies
    send_conn.close()

    try:
        if not recv_conn.poll(timeout):
            logger.warning("Formula %d (%r) timed out after %.1fs", index, name, timeout)
            raise FormulaLimitError(
                f"Formula at index {index} ({name!r}) exceeded the {timeout:g}s time limit",
                index=index,
                name=name,
            )
        try:
            tag, payload = recv_conn.recv()
        except EOFError:
            logger.warning("Formula %d (%r) sandbox exited with code %s", index, name, proc.exitcode)
            raise FormulaLimitError(
                f"Formula at index {index} ({name!r}) crashed the sandbox",
                index=index,
                name=name,
            ) from None
    finally:
        if proc.is_alive():
            proc.kill()
        proc.join()
        recv_conn.close()

    if tag == "ok":
        return payload
    if tag == "compile_error":
        raise FormulaCompileError(payload, index=index, name=name)
    if tag == "limit":
        raise RequestLimitError(payload)
    raise FormulaLimitError(
        f"Formula at index {index} ({name!r}) ran out of resources: {payload}",
        index=index,
        name=name,
    )


def evaluate_formula(
    index: int,
    name: str,
    source: str,
    xp_max: int,
    mode: str = "process",
    timeout: float = 5.0,
    memory_mb: int = 512,
    start_method: str = "spawn",
    max_length: Optional[int] = None,
) -> Series:
    """
    Compile and sample one formula over ``range(xp_max)``.

    Raises:
        FormulaCompileError: the source does not compile to a callable.
        FormulaLimitError: the sandbox timed out, crashed or ran out of memory.
        RequestLimitError: the source is longer than ``max_length``.
    """
    if mode not in SANDBOX_MODES:
        raise ValueError(f"Unknown sandbox mode: {mode!r}")

    logger.debug("Evaluating formula %d (%r): %s", index, name, truncate(source))
    if mode == "inline":
        return build_series(name, source, build_domain(xp_max), index=index, max_length=max_length)
    return _run_in_child(index, name, source, xp_max, timeout, memory_mb, start_method, max_length)


def evaluate_batch(
    formulas: Sequence[Tuple[str, str]],
    xp_max: int,
    mode: str = "process",
    timeout: float = 5.0,
    memory_mb: int = 512,
    start_method: str = "spawn",
    max_length: Optional[int] = None,
) -> BatchResult:
    """
    Evaluate ``(name, source)`` pairs in submission order over one domain.
    Fails fast: the first error aborts the batch and no series are returned.
    """
    if mode == "inline":
        return build_batch(formulas, xp_max, max_length=max_length)

    result = BatchResult(domain=build_domain(xp_max))
    for idx, (name, source) in enumerate(formulas):
        result.series.append(
            evaluate_formula(
                idx,
                name,
                source,
                xp_max,
                mode=mode,
                timeout=timeout,
                memory_mb=memory_mb,
                start_method=start_method,
                max_length=max_length,
            )
        )
    return result
