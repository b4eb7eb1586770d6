"""Tests for job submission, dispatch and the Cloud Tasks dispatcher."""
import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from examgen.errors import DispatcherUnavailable, MaterialNotFound
from examgen.models.jobs import GenerationJobRequest, JobStatus
from examgen.services.orchestrator.dispatch import DISPATCH_INLINE, DISPATCH_QUEUED, GenerationJobService
from examgen.services.task_queue import CloudTasksDispatcher, InlineDispatcher, build_dispatcher


def _request(material_id="material-1"):
    return GenerationJobRequest(
        materialId=material_id,
        courseId="course-1",
        unit=1,
        quotas={"perBloomLevel": {"REMEMBER": 2, "APPLY": 1}},
        initiatedBy="faculty-1",
    )


class TestGenerationJobService:
    @pytest.mark.asyncio
    async def test_inline_fallback_runs_pipeline(self, container, material):
        job, mode = await container.job_service.submit(_request())

        assert mode == DISPATCH_INLINE
        assert job.status == JobStatus.COMPLETED
        assert job.total_requested == 3

    @pytest.mark.asyncio
    async def test_queued_dispatch_leaves_job_pending(self, container, job_repo, material_repo, material):
        dispatcher = MagicMock()
        dispatcher.enqueue = AsyncMock(return_value="projects/p/locations/l/queues/q/tasks/1")
        pipeline = MagicMock()
        pipeline.run = AsyncMock()
        service = GenerationJobService(job_repo, material_repo, pipeline, dispatcher)

        job, mode = await service.submit(_request())

        assert mode == DISPATCH_QUEUED
        assert job.status == JobStatus.PENDING
        dispatcher.enqueue.assert_awaited_once_with(job.id)
        pipeline.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enqueue_failure_falls_back_inline(self, container, job_repo, material_repo, material):
        dispatcher = MagicMock()
        dispatcher.enqueue = AsyncMock(side_effect=DispatcherUnavailable("queue missing"))
        service = GenerationJobService(job_repo, material_repo, container.pipeline, dispatcher)

        job, mode = await service.submit(_request())

        assert mode == DISPATCH_INLINE
        assert job.status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_unknown_material_creates_no_job(self, container, job_repo):
        with pytest.raises(MaterialNotFound):
            await container.job_service.submit(_request("missing"))
        assert job_repo.jobs == {}


class TestDispatchers:
    @pytest.mark.asyncio
    async def test_inline_dispatcher_is_always_unavailable(self):
        with pytest.raises(DispatcherUnavailable):
            await InlineDispatcher().enqueue("job-1")

    @pytest.mark.asyncio
    async def test_cloud_tasks_creates_http_task(self):
        client = MagicMock()
        client.queue_path.return_value = "projects/proj/locations/us-central1/queues/examgen-jobs"
        client.create_task.return_value.name = "tasks/123"
        dispatcher = CloudTasksDispatcher(
            project_id="proj",
            location="us-central1",
            queue="examgen-jobs",
            service_url="https://ai.example.com/",
            internal_token="secret",
            client=client,
        )

        task_name = await dispatcher.enqueue("job-1")

        assert task_name == "tasks/123"
        request = client.create_task.call_args.kwargs["request"]
        http_request = request["task"]["http_request"]
        assert http_request["url"] == "https://ai.example.com/jobs/generate-questions"
        assert http_request["headers"]["X-AI-Internal-Token"] == "secret"
        body = json.loads(base64.b64decode(http_request["body"]))
        assert body["jobId"] == "job-1"
        assert body["jobType"] == "generate_questions"

    @pytest.mark.asyncio
    async def test_cloud_tasks_errors_become_unavailable(self):
        client = MagicMock()
        client.create_task.side_effect = RuntimeError("permission denied")
        dispatcher = CloudTasksDispatcher("proj", "us-central1", "q", "http://localhost:8000", client=client)

        with pytest.raises(DispatcherUnavailable):
            await dispatcher.enqueue("job-1")

    @pytest.mark.asyncio
    async def test_cloud_tasks_without_project_is_unavailable(self):
        with pytest.raises(DispatcherUnavailable):
            await CloudTasksDispatcher("", "us-central1", "q", "http://localhost:8000").enqueue("job-1")

    def test_build_dispatcher_modes(self, settings_for_tests):
        assert isinstance(build_dispatcher(settings_for_tests), InlineDispatcher)
        cloud = build_dispatcher(settings_for_tests.model_copy(update={"DISPATCH_MODE": "cloud_tasks"}))
        assert isinstance(cloud, CloudTasksDispatcher)
        with pytest.raises(ValueError):
            build_dispatcher(settings_for_tests.model_copy(update={"DISPATCH_MODE": "carrier-pigeon"}))
