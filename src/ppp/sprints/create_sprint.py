"""Create a planned sprint."""

from __future__ import annotations

import logging
from typing import Any

from ppp.fs import now_iso, today
from ppp.ids import sprint_number
from ppp.models import new_sprint_record
from ppp.sprints._helpers import check_date, with_folder
from ppp.sync import refresh_sprint
from ppp.workspace import Workspace

log = logging.getLogger(__name__)


def create_sprint(
    ws: Workspace,
    name: str | None = None,
    description: str = "",
    start_date: str | None = None,
) -> dict[str, Any]:
    """Mint the next S<NN> id, record the sprint, add its folder and Release.md row."""
    if start_date:
        check_date(start_date, "start date")
    sprint_id = ws.store.mint_sprint_id()
    record = new_sprint_record(
        sprint_id,
        (name or "").strip() or f"Sprint {sprint_number(sprint_id):02d}",
        now_iso(),
        start_date or today(),
        description=description,
    )
    sprint = ws.store.create_sprint(record)
    folder = refresh_sprint(ws, sprint_id)
    log.info("created sprint %s", sprint_id)
    return with_folder(sprint, folder)
