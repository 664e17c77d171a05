"""Conversion API endpoints.

A conversion runs in the background: its channel messages are pushed to the
EventBus under the job id (and reassembled server-side for the status
endpoint), then streamed to the client via SSE.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from app.event_bus import EventBus, get_event_bus
from scenegraph.integrations.figma_client import FigmaClient, FigmaClientError
from scenegraph.integrations.host import DocumentHost
from scenegraph.logging_config import get_api_logger
from scenegraph.pipeline import run_conversion
from scenegraph.settings import JOB_RETENTION_SECS
from scenegraph.transport import ConversionReceiver, MessageChannel
from scenegraph.transport.messages import EmptyMessage, ErrorMessage

from .conversion_schemas import ConversionJobResponse, ConversionJobStatus, ConversionRequest

logger = get_api_logger()

router = APIRouter(prefix="/api/conversions", tags=["conversions"])


@dataclass
class ConversionJob:
    job_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: str = "running"
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    node_count: int = 0
    # Dropped once the run finishes; the summary fields below are kept
    receiver: Optional[ConversionReceiver] = field(default_factory=ConversionReceiver)
    saw_empty: bool = False
    warnings: List[str] = field(default_factory=list)
    code_length: int = 0

    def finish(self) -> None:
        self.completed_at = datetime.now(timezone.utc)
        if self.error is not None:
            self.status = "failed"
        elif self.saw_empty:
            self.status = "empty"
        else:
            self.status = "completed"
        self.summarize()

    def summarize(self) -> None:
        """Record warnings and code length, then release the reassembled artifacts."""
        if self.receiver is None:
            return
        state = self.receiver.state
        self.warnings = list(state.warnings)
        self.code_length = len(state.code) if self.error is None else 0
        self.receiver = None

    def to_status(self) -> ConversionJobStatus:
        if self.receiver is not None:
            warnings = list(self.receiver.state.warnings)
            code_length = len(self.receiver.state.code) if self.error is None else 0
        else:
            warnings, code_length = list(self.warnings), self.code_length
        return ConversionJobStatus(
            job_id=self.job_id,
            status=self.status,
            created_at=self.created_at.isoformat(),
            completed_at=self.completed_at.isoformat() if self.completed_at else None,
            error=self.error,
            warnings=warnings,
            node_count=self.node_count,
            code_length=code_length,
        )


# In-memory job registry (single process)
_jobs: dict[str, ConversionJob] = {}
_background_tasks: set[asyncio.Task] = set()


def get_job(job_id: str) -> ConversionJob:
    job = _jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Conversion '{job_id}' not found")
    return job


def _evict_finished_jobs() -> None:
    cutoff = datetime.now(timezone.utc) - timedelta(seconds=JOB_RETENTION_SECS)
    expired = [
        job_id for job_id, job in _jobs.items()
        if job.completed_at is not None and job.completed_at < cutoff
    ]
    for job_id in expired:
        del _jobs[job_id]
    if expired:
        logger.info(f"Evicted {len(expired)} finished job(s) older than {JOB_RETENTION_SECS}s")


# --- Endpoints ---


@router.post("", response_model=ConversionJobResponse, status_code=201)
async def start_conversion(payload: ConversionRequest):
    """Start a conversion from an inline REST document or a Figma file.

    SSE events (GET /api/conversions/{job_id}/stream), one per channel message:
      - conversionStart
      - code, or codeChunkStart / codeChunk / codeChunkEnd
      - previewChunkStart / previewChunk / previewChunkEnd (large previews)
      - empty / error
      - done: always last

    Usage:
        POST /api/conversions
        { "file_key": "6kGd851qaAX4TiL44vpIrO", "node_ids": ["16650:538"],
          "settings": { "useColorVariables": true } }
    """
    host: Optional[DocumentHost] = None
    if payload.document is not None:
        host = _host_from_document(payload)
    else:
        from scenegraph.config import FIGMA_TOKEN
        if not FIGMA_TOKEN:
            raise HTTPException(
                status_code=400,
                detail=(
                    "Figma integration not configured. "
                    "Set FIGMA_TOKEN environment variable with a valid Figma Personal Access Token."
                ),
            )

    _evict_finished_jobs()
    job = ConversionJob(job_id=f"conv_{uuid.uuid4().hex[:12]}")
    _jobs[job.job_id] = job
    logger.info(
        f"Job {job.job_id}: conversion started, "
        f"source={'document' if host else payload.file_key}, nodes={payload.node_ids or 'all'}"
    )

    task = asyncio.create_task(_run_job(job, payload, host, get_event_bus()))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return ConversionJobResponse(
        job_id=job.job_id,
        status=job.status,
        created_at=job.created_at.isoformat(),
    )


@router.get("/{job_id}", response_model=ConversionJobStatus)
async def get_conversion_status(job_id: str):
    return get_job(job_id).to_status()


@router.get("/{job_id}/stream")
async def stream_conversion(job_id: str):
    """Stream the job's channel messages via SSE.

    Usage:
        const sse = new EventSource('/api/conversions/{job_id}/stream');
        sse.addEventListener('codeChunk', (e) => console.log(JSON.parse(e.data)));
    """
    get_job(job_id)
    return StreamingResponse(
        get_event_bus().subscribe(job_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# --- Background execution ---


def _host_from_document(payload: ConversionRequest) -> DocumentHost:
    document = payload.document or {}
    if "nodes" in document:
        host = DocumentHost.from_rest_responses(document)
        host.variables.update(payload.variables)
    elif document.get("id"):
        host = DocumentHost([document], payload.variables)
    else:
        raise HTTPException(
            status_code=422,
            detail="'document' must be a node with an 'id' or a file nodes response",
        )
    return host


async def _run_job(
    job: ConversionJob,
    payload: ConversionRequest,
    host: Optional[DocumentHost],
    bus: EventBus,
) -> None:
    channel = MessageChannel()
    forwarder = asyncio.create_task(_forward_messages(job, channel, bus))
    try:
        if host is None:
            async with FigmaClient() as client:
                host = await client.load_host(payload.file_key, payload.node_ids)
        nodes = host.select(payload.node_ids)
        tree = await run_conversion(host, nodes, payload.settings, channel)
        job.node_count = sum(1 for root in tree for _ in root.walk())
    except FigmaClientError as e:
        logger.error(f"Job {job.job_id}: Figma fetch failed: {e}")
        await channel.post(ErrorMessage(error=str(e)))
    finally:
        channel.close()
        await forwarder
        job.finish()
        logger.info(f"Job {job.job_id}: {job.status}")
        bus.push(job.job_id, "done", {"status": job.status})


async def _forward_messages(job: ConversionJob, channel: MessageChannel, bus: EventBus) -> None:
    async for message in channel:
        bus.push(job.job_id, message.type, message.to_wire())
        job.receiver.handle(message)
        if isinstance(message, ErrorMessage):
            job.error = message.error
        elif isinstance(message, EmptyMessage):
            job.saw_empty = True
