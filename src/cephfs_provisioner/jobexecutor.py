import concurrent
from concurrent.futures import ThreadPoolExecutor, Future
from threading import BoundedSemaphore
from typing import List, Callable, Iterator, Any

from cephfs_provisioner.logging import logger


class JobExecutor:

    # There is no limit on the number of submitted jobs, but the number of simultaneous outstanding results is
    # limited. Jobs are only started when a slot is available and a slot is only given back when the result has
    # been collected with get_completed().
    def __init__(self, *, workers: int, name: str) -> None:
        self._name = name
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=name)
        self._futures: List[Future] = []
        # Set the queue limit to two times the number of workers plus one to ensure that there are always
        # enough jobs available even when all futures finish at the same time.
        self._semaphore = BoundedSemaphore(2 * workers + 1)

    def submit(self, function: Callable) -> None:

        def execute_with_acquire():
            self._semaphore.acquire()
            return function()

        self._futures.append(self._executor.submit(execute_with_acquire))

    # This is tricky to implement as we need to make sure that we don't hold a reference to the completed Future anymore.
    # Indeed it's so tricky that older Python versions had the same problem. See https://bugs.python.org/issue27144.
    def get_completed(self, timeout: int = None) -> Iterator[Any]:
        for future in concurrent.futures.as_completed(self._futures, timeout=timeout):
            self._futures.remove(future)
            if not future.cancelled():
                self._semaphore.release()
            try:
                result = future.result()
            except Exception as exception:
                result = exception
            del future
            yield result

    def shutdown(self) -> None:
        if len(self._futures) > 0:
            logger.warning('Job executor "{}" is being shutdown with {} outstanding jobs, cancelling them.'.format(
                self._name, len(self._futures)))
            for future in self._futures:
                future.cancel()
            logger.debug('Job executor "{}" cancelled all outstanding jobs.'.format(self._name))
            # Get all jobs so that the semaphore gets released and still waiting jobs can complete
            for _ in self.get_completed():
                pass
            logger.debug('Job executor "{}" read results for all outstanding jobs.'.format(self._name))
        self._executor.shutdown()
