from __future__ import annotations


class ChecklistError(Exception):
    pass


class DesignNotFoundError(ChecklistError):
    def __init__(self, design_id: str):
        self.design_id = design_id
        super().__init__(f"Design not found: {design_id}")


class ItemNotFoundError(ChecklistError):
    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Item not found in checklist: {item_id}")


class UnauthorizedError(ChecklistError):
    pass


class GatewayError(ChecklistError):
    """An upstream service answered with something we could not interpret."""
