"""Domain errors raised by the slot services."""


class SlotSchedulerError(Exception):
    """Base class for slot scheduling failures."""


class SlotCapacityError(SlotSchedulerError):
    def __init__(self, day_of_week: int, limit: int) -> None:
        super().__init__(f'Maximum {limit} recurring slots allowed per day')
        self.day_of_week = day_of_week
        self.limit = limit


class SlotNotFoundError(SlotSchedulerError):
    def __init__(self, slot_id: str) -> None:
        super().__init__(f'Slot with ID {slot_id} not found')
        self.slot_id = slot_id
