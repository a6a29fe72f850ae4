"""
Worker runtimes the autoscaler can resize.

Provides:
- WorkerRuntime: protocol for reading and setting worker capacity
- InProcessWorkerPool: asyncio tasks in the current process
- EcsServiceRuntime: desired count of an ECS service
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol, runtime_checkable

import boto3

from core.logging import get_logger, log_with_context
from doc_pipeline.workers.document_worker import DocumentWorker

logger = get_logger(__name__)


@runtime_checkable
class WorkerRuntime(Protocol):
    """Protocol for a runtime whose worker count can be changed."""

    name: str

    async def current_capacity(self) -> int:
        ...

    async def set_capacity(self, desired: int) -> None:
        ...


class InProcessWorkerPool:
    """
    Runs DocumentWorkers as asyncio tasks in this process.

    Scale-in cancels the newest workers. A cancelled worker abandons its
    in-flight message, which the queue redelivers after the visibility
    timeout.
    """

    name = "in_process"

    def __init__(self, worker_factory: Callable[[str], DocumentWorker]):
        self._worker_factory = worker_factory
        self._tasks: List[asyncio.Task] = []
        self._workers: List[DocumentWorker] = []
        self._next_index = 0

    async def current_capacity(self) -> int:
        self._reap()
        return len(self._tasks)

    async def set_capacity(self, desired: int) -> None:
        self._reap()
        while len(self._tasks) < desired:
            worker_id = f"worker-{self._next_index}"
            self._next_index += 1
            worker = self._worker_factory(worker_id)
            self._workers.append(worker)
            self._tasks.append(asyncio.create_task(worker.start(), name=worker_id))

        while len(self._tasks) > desired:
            task = self._tasks.pop()
            self._workers.pop()
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        log_with_context(
            logger,
            logging.INFO,
            "Worker pool resized",
            current_capacity=len(self._tasks),
            desired_capacity=desired,
        )

    async def shutdown(self) -> None:
        """Stop all workers after their in-flight messages."""
        for worker in self._workers:
            await worker.stop()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self._workers.clear()

    def _reap(self) -> None:
        """Forget workers whose tasks have finished."""
        alive = [
            (task, worker)
            for task, worker in zip(self._tasks, self._workers)
            if not task.done()
        ]
        self._tasks = [task for task, _ in alive]
        self._workers = [worker for _, worker in alive]


class EcsServiceRuntime:
    """Sets the desired count of an ECS service running the worker container."""

    name = "ecs"

    def __init__(
        self,
        cluster: str,
        service: str,
        region: Optional[str] = None,
        client: Any = None,
    ):
        self.cluster = cluster
        self.service = service
        self._client = client or boto3.client("ecs", region_name=region)

    async def current_capacity(self) -> int:
        response = await asyncio.to_thread(
            self._client.describe_services,
            cluster=self.cluster,
            services=[self.service],
        )
        services = response.get("services", [])
        if not services:
            return 0
        return int(services[0].get("desiredCount", 0))

    async def set_capacity(self, desired: int) -> None:
        await asyncio.to_thread(
            self._client.update_service,
            cluster=self.cluster,
            service=self.service,
            desiredCount=desired,
        )
        log_with_context(
            logger,
            logging.INFO,
            "ECS service desired count updated",
            desired_capacity=desired,
        )
