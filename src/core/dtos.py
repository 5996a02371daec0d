from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.enums import MetadataStatus


class DTOBase(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        alias_generator=lambda s: "".join(
            ["_" + c.lower() if c.isupper() else c for c in s]
        ).lstrip("_"),
        str_strip_whitespace=True,
        strict=True,
    )


class KeyedDTO(DTOBase):
    # Ids are compared verbatim by the stores; trimming them would split one key in two
    model_config = ConfigDict(str_strip_whitespace=False)


class Contribution(KeyedDTO):
    design_id: str
    quantity: int = Field(gt=0)
    added_at: datetime
    design_title: str | None = None


class AggregateRow(KeyedDTO):
    """
    One merged checklist row per (user_id, item_id).

    Construction fails unless the row is internally consistent:
      - quantity_needed equals the sum of contribution quantities
      - 0 <= quantity_acquired <= quantity_needed
      - no design contributes twice
      - at least one contribution exists
    """

    user_id: str
    item_id: int
    quantity_needed: int = Field(ge=0)
    quantity_acquired: int = Field(ge=0)
    contributions: list[Contribution] = Field(min_length=1)
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _check_invariants(self):
        total = sum(c.quantity for c in self.contributions)
        if self.quantity_needed != total:
            raise ValueError(
                f"quantity_needed={self.quantity_needed} does not match contributions sum={total}"
            )
        if self.quantity_acquired > self.quantity_needed:
            raise ValueError(
                f"quantity_acquired={self.quantity_acquired} exceeds quantity_needed={self.quantity_needed}"
            )
        design_ids = [c.design_id for c in self.contributions]
        if len(design_ids) != len(set(design_ids)):
            raise ValueError(f"duplicate design contributions: {design_ids}")
        return self

    @property
    def is_complete(self) -> bool:
        return self.quantity_acquired >= self.quantity_needed

    @property
    def design_ids(self) -> list[str]:
        return [c.design_id for c in self.contributions]


class DesignItem(DTOBase):
    item_id: int
    quantity: int


class DesignSnapshot(KeyedDTO):
    design_id: str
    title: str
    items: list[DesignItem] = Field(default_factory=list)


class ItemMetadata(DTOBase):
    item_id: int
    name: str
    icon_url: str | None = None
    wow_item_id: int | None = None
    category: str | None = None
    subcategory: str | None = None
    source: str | None = None
    source_details: str | None = None


class ChecklistItem(DTOBase):
    item_id: int
    quantity_needed: int
    quantity_acquired: int
    is_complete: bool
    contributions: list[Contribution]
    created_at: datetime
    updated_at: datetime
    metadata_status: MetadataStatus
    name: str
    icon_url: str | None = None
    wow_item_id: int | None = None
    category: str | None = None
    subcategory: str | None = None
    source: str | None = None
    source_details: str | None = None


class ListSummary(DTOBase):
    total_items: int = 0
    total_quantity_needed: int = 0
    total_quantity_acquired: int = 0
    incomplete_count: int = 0
    design_count: int = 0


class DesignGroupEntry(DTOBase):
    item_id: int
    name: str
    icon_url: str | None = None
    quantity_for_design: int
    quantity_needed: int
    quantity_acquired: int
    is_complete: bool


class DesignGroup(KeyedDTO):
    design_id: str
    title: str
    items: list[DesignGroupEntry] = Field(default_factory=list)


class AddDesignResult(KeyedDTO):
    design_id: str
    added_count: int = 0
    updated_count: int = 0
    unchanged_count: int = 0
    total_items: int = 0

    @property
    def affected(self) -> int:
        return self.added_count + self.updated_count

    @property
    def empty(self) -> bool:
        return self.total_items == 0


class RemoveDesignResult(KeyedDTO):
    design_id: str
    removed_count: int = 0
    updated_count: int = 0


class ToggleResult(DTOBase):
    item_id: int
    now_complete: bool
    quantity_acquired: int


class ClearResult(DTOBase):
    cleared_count: int = 0
