"""Database models for Stitch Log."""

from stitchlog.models.base import Base
from stitchlog.models.enums import NeedleType, PhotoType, YarnWeight
from stitchlog.models.inventory import NeedleInventory
from stitchlog.models.project import Needle, Note, Pattern, Photo, Project, Yarn
from stitchlog.models.tag import ProjectTag, Tag

__all__ = [
    "Base",
    "Needle",
    "NeedleInventory",
    "NeedleType",
    "Note",
    "Pattern",
    "Photo",
    "PhotoType",
    "Project",
    "ProjectTag",
    "Tag",
    "Yarn",
    "YarnWeight",
]
