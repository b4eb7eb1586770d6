"""Google Cloud Tasks dispatcher for generation jobs.

Jobs are delivered back to this service's worker endpoint. When no queue is
available the caller runs the pipeline inline instead.
"""
import asyncio
import base64
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from examgen.config import Settings
from examgen.errors import DispatcherUnavailable
from examgen.models.jobs import JobPayload

logger = logging.getLogger(__name__)

WORKER_ENDPOINT = "/jobs/generate-questions"


class TaskDispatcher(ABC):
    @abstractmethod
    async def enqueue(self, job_id: str) -> str:
        """
        Schedule a generation job for asynchronous execution.

        Returns:
            Task name

        Raises:
            DispatcherUnavailable: If the job could not be scheduled
        """
        pass


class CloudTasksDispatcher(TaskDispatcher):
    """Creates one HTTP task per job on a Cloud Tasks queue."""

    def __init__(
        self,
        project_id: str,
        location: str,
        queue: str,
        service_url: str,
        internal_token: str = "",
        client: Optional[Any] = None,
    ):
        self.project_id = project_id
        self.location = location
        self.queue = queue
        self.service_url = service_url.rstrip("/")
        self.internal_token = internal_token
        self._client = client

    def _get_client(self):
        if self._client is None:
            from google.cloud import tasks_v2

            self._client = tasks_v2.CloudTasksClient()
        return self._client

    def _build_task(self, job_id: str) -> dict:
        from google.cloud import tasks_v2

        payload = JobPayload(jobId=job_id, data={"jobId": job_id})
        headers = {"Content-Type": "application/json"}
        if self.internal_token:
            headers["X-AI-Internal-Token"] = self.internal_token

        return {
            "http_request": {
                "http_method": tasks_v2.HttpMethod.POST,
                "url": f"{self.service_url}{WORKER_ENDPOINT}",
                "headers": headers,
                "body": base64.b64encode(json.dumps(payload.model_dump()).encode()).decode(),
            }
        }

    def _create_task(self, job_id: str) -> str:
        client = self._get_client()
        parent = client.queue_path(self.project_id, self.location, self.queue)
        response = client.create_task(request={"parent": parent, "task": self._build_task(job_id)})
        return response.name

    async def enqueue(self, job_id: str) -> str:
        if not self.project_id:
            raise DispatcherUnavailable("GCS_PROJECT_ID is not configured for Cloud Tasks")

        try:
            task_name = await asyncio.to_thread(self._create_task, job_id)
        except Exception as e:
            logger.error(f"Failed to create Cloud Task for job {job_id}: {e}")
            raise DispatcherUnavailable(str(e)) from e

        logger.info(f"Created Cloud Task: {task_name}")
        return task_name


class InlineDispatcher(TaskDispatcher):
    """No queue: every job is run synchronously by the caller."""

    async def enqueue(self, job_id: str) -> str:
        raise DispatcherUnavailable("Inline dispatch mode has no task queue")


def build_dispatcher(config: Settings) -> TaskDispatcher:
    mode = config.DISPATCH_MODE.lower()

    if mode == "cloud_tasks":
        return CloudTasksDispatcher(
            project_id=config.GCS_PROJECT_ID,
            location=config.CLOUD_TASKS_LOCATION,
            queue=config.CLOUD_TASKS_QUEUE,
            service_url=config.AI_SERVICE_URL,
            internal_token=config.AI_INTERNAL_TOKEN,
        )
    if mode == "inline":
        return InlineDispatcher()

    raise ValueError(f"Unsupported dispatch mode: {config.DISPATCH_MODE}")
