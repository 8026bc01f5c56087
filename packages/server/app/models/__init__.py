# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import CreatedAtMixin, DescribedMixin, TimestampMixin, UUIDMixin  # noqa: F401
from .user import User  # noqa: F401
from .organization import Organization  # noqa: F401
from .tenant import Tenant  # noqa: F401
from .unit import Unit, ParentChild  # noqa: F401
from .membership import UnitMember  # noqa: F401
from .slug_history import SlugHistory  # noqa: F401
