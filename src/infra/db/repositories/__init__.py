from .checklist_repo import ChecklistRepo

__all__ = ["ChecklistRepo"]
