"""
Thread Archive API Routes
"""

from fastapi import APIRouter, Depends, HTTPException
import logging

from pinkeeper.api.deps import get_runtime
from pinkeeper.integrations.slack.parser import parse_permalink
from pinkeeper.models.api_responses import ArchiveRequest
from pinkeeper.models.archive import ArchiveResult
from pinkeeper.services.runtime import BotRuntime

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=ArchiveResult)
async def archive_thread(request: ArchiveRequest, runtime: BotRuntime = Depends(get_runtime)):
    """
    Archive a thread to local storage.

    Examples:
    - {"channel_id": "C123ABC456", "root_id": "1706123400.123456"}
    - {"permalink": "https://myworkspace.slack.com/archives/C123ABC456/p1706123400123456"}
    """
    channel_id, root_id = request.channel_id, request.root_id
    if request.permalink:
        try:
            parsed = parse_permalink(request.permalink)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        channel_id, root_id = parsed.channel_id, parsed.thread_ts

    result = await runtime.archiver.archive(channel_id, root_id, requested_by=request.requested_by)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.model_dump(mode="json"))
    return result
