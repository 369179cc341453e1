"""
Thread Archiver

Exports one thread to local storage:
1. Fetch every message of the thread once (pagination handled by the gateway)
2. De-duplicate by message id, first occurrence wins
3. Sort by (creation time, message id)
4. Resolve each author's display name once per run
5. Write <archive_root>/<yyyy.MM.dd HH-mm> <root author>/transcript.txt
6. Download attachments into files/ (created only when needed)
7. Tell the requesting user how it went, privately

Directory creation and the transcript write decide success. Attachment
download failures are logged and listed in the result only.
"""

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Dict, Iterable, Optional

from pinkeeper.errors import ArchiveError, GatewayError
from pinkeeper.integrations.gateway import ChatGateway
from pinkeeper.models.archive import ArchiveResult
from pinkeeper.models.thread import ThreadMessage, ThreadSnapshot
from pinkeeper.utils.helpers import archive_folder_name, format_transcript, sanitize_filename

logger = logging.getLogger(__name__)

TRANSCRIPT_NAME = "transcript.txt"
FILES_DIR_NAME = "files"

SUCCESS_TEXT = "The thread has been archived to {path}"
FAILURE_TEXT = "Could not archive the thread: {error}"


def build_snapshot(channel_id: str, root_id: str, messages: Iterable[ThreadMessage]) -> ThreadSnapshot:
    """
    De-duplicate and order raw thread messages.

    Raises:
        ArchiveError: If no messages remain
    """
    seen = set()
    unique = []
    for msg in messages:
        if msg.id in seen:
            continue
        seen.add(msg.id)
        unique.append(msg)

    if not unique:
        raise ArchiveError(f"Thread {root_id} has no messages")

    unique.sort(key=lambda m: (m.created_at, m.id))
    return ThreadSnapshot(root_id=root_id, channel_id=channel_id, messages=tuple(unique))


class ThreadArchiver:
    """Writes thread transcripts and attachments under archive_root."""

    def __init__(self, gateway: ChatGateway, archive_root: Path):
        self.gateway = gateway
        self.archive_root = Path(archive_root)

    async def resolve_names(self, snapshot: ThreadSnapshot) -> Dict[str, str]:
        """One lookup per distinct author; unknown users keep their id."""
        names = {}
        for author_id in snapshot.author_ids:
            try:
                profile = await self.gateway.lookup_user(author_id)
                names[author_id] = profile.display_name
            except GatewayError as e:
                logger.warning(f"Could not resolve user {author_id}: {e}")
                names[author_id] = author_id
        return names

    def target_for(self, snapshot: ThreadSnapshot, names: Dict[str, str]) -> Path:
        root = snapshot.root
        return self.archive_root / archive_folder_name(root.created_at, names.get(root.author_id, root.author_id))

    def _write_transcript(self, target: Path, text: str) -> Path:
        target.mkdir(parents=True, exist_ok=True)
        transcript = target / TRANSCRIPT_NAME
        tmp_path = None
        try:
            # Unique name per run: concurrent archives of one thread must not share it
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=target, prefix=f".{TRANSCRIPT_NAME}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(text)
            tmp_path.replace(transcript)
        except OSError:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise
        return transcript

    async def _download_files(self, snapshot: ThreadSnapshot, target: Path, result: ArchiveResult) -> None:
        files_dir = target / FILES_DIR_NAME
        attachments = [a for msg in snapshot.messages for a in msg.attachments]

        try:
            await asyncio.to_thread(files_dir.mkdir, exist_ok=True)
        except OSError as e:
            logger.error(f"Could not create {files_dir}: {e}")
            result.failed_files.extend(a.name for a in attachments)
            return

        for attachment in attachments:
            dest = files_dir / sanitize_filename(attachment.name, fallback=attachment.file_id)
            try:
                await self.gateway.download_attachment(attachment, dest)
                result.downloaded_files.append(dest.name)
            except (GatewayError, OSError) as e:
                logger.error(f"Failed to download {attachment.file_id} to {dest}: {e}")
                result.failed_files.append(attachment.name)

    async def archive(
        self, channel_id: str, root_id: str, requested_by: Optional[str] = None
    ) -> ArchiveResult:
        """
        Archive a thread and report to the requester.

        Args:
            channel_id: Channel holding the thread
            root_id: Id of the thread's root message
            requested_by: User to notify; no notice is sent when None

        Returns:
            ArchiveResult, success=False when the thread could not be read or
            the transcript could not be written
        """
        logger.info(f"Archiving thread {root_id} in {channel_id} (requested by {requested_by})")
        result = ArchiveResult(success=False, root_id=root_id)

        try:
            raw_messages = await self.gateway.fetch_thread_messages(channel_id, root_id)
            snapshot = build_snapshot(channel_id, root_id, raw_messages)
        except (GatewayError, ArchiveError) as e:
            logger.error(f"Could not read thread {root_id}: {e}")
            result.error = str(e)
            await self._notify(channel_id, root_id, requested_by, result)
            return result

        names = await self.resolve_names(snapshot)
        target = self.target_for(snapshot, names)
        result.path = target
        result.message_count = len(snapshot.messages)

        try:
            await asyncio.to_thread(
                self._write_transcript, target, format_transcript(snapshot.messages, names)
            )
        except OSError as e:
            logger.error(f"Could not write transcript to {target}: {e}")
            result.error = f"could not write {target}: {e.strerror or e}"
            await self._notify(channel_id, root_id, requested_by, result)
            return result

        result.success = True

        if snapshot.has_attachments:
            await self._download_files(snapshot, target, result)

        logger.info(
            f"Archived thread {root_id} to {target}: {result.message_count} messages, "
            f"{len(result.downloaded_files)} files, {len(result.failed_files)} failed"
        )
        await self._notify(channel_id, root_id, requested_by, result)
        return result

    async def _notify(
        self, channel_id: str, root_id: str, requested_by: Optional[str], result: ArchiveResult
    ) -> None:
        if not requested_by:
            return
        if result.success:
            text = SUCCESS_TEXT.format(path=result.path)
        else:
            text = FAILURE_TEXT.format(error=result.error)
        try:
            await self.gateway.post_ephemeral_message(channel_id, requested_by, text, root_id=root_id)
        except GatewayError as e:
            logger.error(f"Could not notify {requested_by} about archive of {root_id}: {e}")
