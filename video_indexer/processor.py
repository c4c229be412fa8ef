from __future__ import annotations

import requests

from .client import RemoteError, fetch_user, fetch_video, submit_join
from .models import Config, JoinedRecord, WorkItem


def process_item(session: requests.Session, config: Config, item: WorkItem) -> JoinedRecord:
    """Fetch user, fetch video, submit the join. Stops at the first failure.

    A failed submission re-raises with the built record attached as ``exc.record``.
    """
    user = fetch_user(session, config, item.user_id)
    video = fetch_video(session, config, item.video_id)

    record = JoinedRecord(user=user, video=video)
    try:
        submit_join(session, config.index_url, record, config.http_timeout_sec)
    except RemoteError as exc:
        exc.record = record
        raise
    return record
