"""HTTP server receiving push events.

Endpoints:
  - GET /health
  - POST /events/push
  - POST /webhooks/github
"""

from __future__ import annotations

import asyncio
import hmac
import json
import logging
from dataclasses import dataclass
from hashlib import sha256
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from prettier_skill.core.config import AppSettings
from prettier_skill.core.startup_validation import validate_all
from prettier_skill.domain.configuration import merge_configuration
from prettier_skill.domain.push_event import PushEvent
from prettier_skill.integrations.git.git_ops import GitOps, GitOpsConfig
from prettier_skill.integrations.github.credentials import CredentialResolver, GitHubCredential
from prettier_skill.integrations.github.github_client import GitHubClient, GitHubClientConfig
from prettier_skill.runtime.work_paths import get_default_work_paths, get_work_paths
from prettier_skill.skill_loop import SkillLoop


class PushEventRequest(BaseModel):
    """Request for /events/push."""

    push: PushEvent
    configuration: dict[str, Any] | None = Field(
        default=None,
        description="Skill parameters; the configured defaults apply when omitted.",
    )


@dataclass(frozen=True)
class QueuedEvent:
    push: PushEvent
    configuration: dict[str, Any] | None


@dataclass(frozen=True)
class EnqueueResult:
    """Enqueue result."""

    queued: bool
    queue_size: int


class WorkerRuntime:
    """Background runtime that processes events sequentially."""

    def __init__(self, *, settings: AppSettings, work_root: str | None = None) -> None:
        self._settings = settings
        self._queue: asyncio.Queue[QueuedEvent] = asyncio.Queue()
        self._consumer_task: asyncio.Task[None] | None = None

        root = work_root or settings.work_root
        paths = get_work_paths(work_root=root) if root is not None else get_default_work_paths()
        paths.projects_dir.mkdir(parents=True, exist_ok=True)

        self._skill_loop = SkillLoop(
            credential_resolver=CredentialResolver(token=settings.github_token),
            github_client_factory=self._build_github_client,
            git_ops=GitOps(
                config=GitOpsConfig(
                    author_name=settings.git_author_name,
                    author_email=settings.git_author_email,
                    server_url=settings.github_server_url,
                )
            ),
            work_paths=paths,
            generated_branch_prefix=settings.generated_branch_prefix,
            repository_filter=settings.repos,
        )

    async def start(self) -> None:
        """Starts background consumer."""

        if self._consumer_task is None:
            self._consumer_task = asyncio.create_task(self._consume())

    async def stop(self) -> None:
        """Cancels the consumer."""

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass
            self._consumer_task = None

    async def enqueue(self, *, event: QueuedEvent) -> EnqueueResult:
        """Enqueues an event for sequential processing."""

        await self._queue.put(event)
        return EnqueueResult(queued=True, queue_size=self._queue.qsize())

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                try:
                    await asyncio.to_thread(self._run_blocking, event)
                except Exception as exc:  # noqa: BLE001
                    logging.exception(
                        "Push event failed: repo=%s error=%s", event.push.repo.slug, exc
                    )
            finally:
                self._queue.task_done()

    def _run_blocking(self, event: QueuedEvent) -> None:
        configuration = merge_configuration(
            event.configuration, defaults=self._settings.skill_configuration
        )
        self._skill_loop.run(event=event.push, configuration=configuration)

    def _build_github_client(self, credential: GitHubCredential) -> GitHubClient:
        return GitHubClient(
            config=GitHubClientConfig(
                api_base_url=self._settings.github_api_base_url,
                token=credential.token,
            )
        )


def verify_signature(*, body: bytes, secret: str | None, signature_header: str | None) -> bool:
    """Verifies ``X-Hub-Signature-256``. Without a secret every payload is accepted."""

    if not secret:
        return True
    if not signature_header or not signature_header.startswith("sha256="):
        return False
    expected = "sha256=" + hmac.new(secret.encode("utf-8"), body, sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header)


def create_app(*, work_root: str | None = None) -> FastAPI:
    """Creates FastAPI app."""

    logging.basicConfig(level=logging.INFO)
    settings = AppSettings()
    runtime = WorkerRuntime(settings=settings, work_root=work_root)

    app = FastAPI()
    app.state.runtime = runtime

    @app.on_event("startup")
    async def _startup() -> None:
        validate_all(settings=settings)
        await runtime.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await runtime.stop()

    async def _enqueue_push(
        push: PushEvent, configuration: dict[str, Any] | None
    ) -> dict[str, object]:
        if not settings.repos.matches(push.repo):
            return {
                "queued": False,
                "ignored": True,
                "reason": f"repository {push.repo.slug} not selected",
            }
        enqueue_result = await runtime.enqueue(
            event=QueuedEvent(push=push, configuration=configuration)
        )
        return {
            "queued": enqueue_result.queued,
            "queue_size": enqueue_result.queue_size,
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/events/push")
    async def push_event(req: PushEventRequest) -> dict[str, object]:
        return await _enqueue_push(req.push, req.configuration)

    @app.post("/webhooks/github")
    async def github_webhook(request: Request) -> dict[str, object]:
        body = await request.body()
        if not verify_signature(
            body=body,
            secret=settings.github_webhook_secret,
            signature_header=request.headers.get("X-Hub-Signature-256"),
        ):
            raise HTTPException(status_code=401, detail="invalid webhook signature")

        event_name = request.headers.get("X-GitHub-Event", "")
        if event_name != "push":
            return {"queued": False, "ignored": True, "reason": f"unsupported event {event_name}"}
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise HTTPException(status_code=400, detail="invalid JSON payload") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="invalid JSON payload")
        push = PushEvent.from_github_webhook(payload)
        if push is None:
            return {"queued": False, "ignored": True, "reason": "not a branch update"}

        return await _enqueue_push(push, None)

    return app


async def _serve() -> None:
    settings = AppSettings()
    app = create_app()
    config = uvicorn.Config(
        app, host=settings.listen_host, port=settings.listen_port, log_level="info"
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Entry point used by Docker CMD."""

    asyncio.run(_serve())


if __name__ == "__main__":
    main()
