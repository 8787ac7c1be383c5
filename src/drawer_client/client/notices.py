from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class Notice(Enum):
    CONNECTION_LOST = "connection to the server is lost, scene updates won't be received"
    QUOTA_EXCEEDED = "Exceeded memory quota on local storage"


@dataclass
class Notifier:
    """
    User-visible notice sink.

    The default implementation logs each notice as a warning and keeps them so
    the viewer can show them. Hosts with a real UI pass a subclass.
    """

    scene_id: str = ""
    notices: list[Notice] = field(default_factory=list)

    def notify(self, notice: Notice) -> None:
        self.notices.append(notice)
        logger.warning("[scene:%s] %s", self.scene_id, notice.value)
