"""
Run independent per-site tasks, serially or with a pool of workers
"""

import queue
import threading
import time
from collections import deque
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger

# interval at which running tasks are checked for a timeout [s]
POLL_INTERVAL = 0.05


def _run_in_thread(name, func, done):
    try:
        result = func()
    except Exception as exc:
        result = exc
    done.put((name, result))


def run_tasks(tasks: List[Tuple[str, Callable]],
              max_workers: int = 1,
              timeout: Optional[float] = None,
              desc: Optional[str] = 'RUNNING') -> Dict[str, object]:
    """Run the tasks and collect the results by task name.

    A task that raises has the exception as result, a task that runs
    longer than the timeout a TimeoutError. The caller decides what to
    do with them.

    Every task gets its own daemon thread and at most max_workers of
    them run at the same time. A task that exceeds the timeout gives
    its slot to the next task in the queue; its thread is abandoned
    and its late result ignored. Timeouts can only be enforced this
    way, so a timeout always runs the tasks in threads.

    Args:
        tasks: List of (name, callable) tuples.
        max_workers: Number of tasks running at the same time.
        timeout: Maximum run time of a single task in seconds.
        desc: Description for logging, nothing is logged if empty.

    Returns:
        Dict mapping task name to result (or exception).
    """
    results: Dict[str, object] = {}
    max_workers = max(1, min(max_workers, len(tasks)))

    if max_workers <= 1 and timeout is None:
        if desc:
            logger.info(f'{desc}: {len(tasks)} tasks (serial)')
        for name, func in tasks:
            try:
                results[name] = func()
            except Exception as exc:
                results[name] = exc
        return results

    if desc:
        logger.info(f'{desc}: {len(tasks)} tasks with {max_workers} workers')
    todo = deque(tasks)
    running: Dict[str, float] = {}
    done: queue.Queue = queue.Queue()
    poll = None if timeout is None else min(timeout, POLL_INTERVAL)

    while todo or running:
        while todo and len(running) < max_workers:
            name, func = todo.popleft()
            running[name] = time.monotonic()
            threading.Thread(target=_run_in_thread, args=(name, func, done),
                             name=f'task-{name}', daemon=True).start()
        try:
            name, result = done.get(timeout=poll)
        except queue.Empty:
            pass
        else:
            # results of tasks that already timed out are dropped
            if name in running:
                del running[name]
                results[name] = result
        if timeout is None:
            continue
        now = time.monotonic()
        for name, start in list(running.items()):
            if now - start > timeout:
                results[name] = TimeoutError(
                    f'{name} exceeded the timeout of {timeout}s')
                del running[name]
    return results
