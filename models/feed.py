from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class FeedThing:
    """Read model: every interaction on one Thing that the viewer may see.

    Rows are held as plain dict snapshots so cached entries outlive the
    database session that produced them.
    """
    thing: Dict[str, Any]
    interactions: List[Dict[str, Any]]
    my_interaction: Optional[Dict[str, Any]]
    average_rating: Optional[float]
    most_recent_update: datetime
    interaction_ids: List[str] = field(default_factory=list)

    @property
    def thing_id(self) -> str:
        return str(self.thing["id"])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "thing": self.thing,
            "interactions": self.interactions,
            "my_interaction": self.my_interaction,
            "average_rating": self.average_rating,
            "most_recent_update": self.most_recent_update.isoformat(),
        }
