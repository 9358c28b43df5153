"""
Organization and membership binding models.

Organizations are the unit of tenant isolation. A binding grants a user one
role inside one organization, or platform-wide SuperAdmin through the
reserved sentinel organization id.
"""
from sqlalchemy import String, Boolean, ForeignKey, Index, Enum as SQLEnum, text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_ulid
from app.features.access.roles import SystemRole


class Organization(Base, TimestampMixin):
    """
    Organization model representing an institute (tenant).
    """
    __tablename__ = "organizations"

    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Inactive organizations grant no access to their members
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r})>"


class OrganizationBinding(Base, TimestampMixin):
    """
    Grants a user a role within an organization.

    organization_id carries no foreign key: the sentinel id used for
    SuperAdmin bindings is reserved and never an organizations row. At most
    one active binding exists per (user_id, organization_id).
    """
    __tablename__ = "organization_bindings"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    organization_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)

    role: Mapped[SystemRole] = mapped_column(SQLEnum(SystemRole), nullable=False)
    can_invite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index(
            "uq_organization_bindings_active",
            "user_id",
            "organization_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<OrganizationBinding(id={self.id}, user_id={self.user_id}, "
            f"org_id={self.organization_id}, role={self.role})>"
        )
