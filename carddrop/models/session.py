from dataclasses import dataclass, field
from datetime import UTC, datetime

from carddrop.models.card import CardDefinition, CardInstance

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass
class UserSession:
    """
    A user's in-memory economic state.

    Exactly one instance exists per user for the lifetime of the process.
    Inventory order is acquisition order; removal by index depends on it.
    """

    user_id: str
    inventory: list[CardInstance] = field(default_factory=list)
    last_draw_at: datetime = EPOCH
    last_pack_at: datetime = EPOCH
    last_pick_at: datetime = EPOCH

    # Not persisted
    pick_choices: list[CardDefinition] = field(default_factory=list)

    def find_instance(self, instance_id: str) -> int | None:
        """Index of the instance with this id, or None."""
        for index, instance in enumerate(self.inventory):
            if instance.instance_id == instance_id:
                return index
        return None

    def owns_instance(self, instance_id: str) -> bool:
        return self.find_instance(instance_id) is not None

    def count_instance(self, instance_id: str) -> int:
        return sum(1 for instance in self.inventory if instance.instance_id == instance_id)

    def has_active_pick(self) -> bool:
        return bool(self.pick_choices)
