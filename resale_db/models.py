# This project was developed with assistance from AI tools.
"""
HOA resale -- domain models

Resale certificate and settlement applications with their property owner
forms, outbound notifications, and per-property groups for multi-community
associations.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from .enums import (
    ApplicationStatus,
    FormStatus,
    FormType,
    NotificationType,
    PackageType,
    PropertyGroupStatus,
    SubmitterType,
)


class HoaProperty(Base):
    """An HOA (association) that certificates are issued for."""

    __tablename__ = "hoa_properties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    is_multi_community = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    applications = relationship("Application", back_populates="hoa_property")

    def __repr__(self):
        return f"<HoaProperty(id={self.id}, name='{self.name}')>"


class Application(Base):
    """Resale certificate / settlement request."""

    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    hoa_property_id = Column(
        Integer, ForeignKey("hoa_properties.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    # Kept as a plain string so an unrecognised type still loads and can be
    # reported as a classification error instead of failing the query.
    application_type = Column(String(50), nullable=True)
    submitter_type = Column(
        Enum(SubmitterType, name="submitter_type", native_enum=False),
        nullable=True,
    )
    status = Column(
        Enum(ApplicationStatus, name="application_status", native_enum=False),
        nullable=False,
        default=ApplicationStatus.SUBMITTED,
    )
    package_type = Column(
        Enum(PackageType, name="package_type", native_enum=False),
        nullable=False,
        default=PackageType.STANDARD,
    )
    property_address = Column(Text, nullable=True)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    inspection_form_completed_at = Column(DateTime(timezone=True), nullable=True)
    resale_certificate_completed_at = Column(DateTime(timezone=True), nullable=True)
    settlement_form_completed_at = Column(DateTime(timezone=True), nullable=True)

    pdf_url = Column(Text, nullable=True)
    pdf_generated_at = Column(DateTime(timezone=True), nullable=True)
    pdf_completed_at = Column(DateTime(timezone=True), nullable=True)
    email_completed_at = Column(DateTime(timezone=True), nullable=True)
    forms_updated_at = Column(DateTime(timezone=True), nullable=True)

    lender_questionnaire_file_path = Column(Text, nullable=True)
    lender_questionnaire_downloaded_at = Column(DateTime(timezone=True), nullable=True)
    lender_questionnaire_completed_file_path = Column(Text, nullable=True)
    lender_questionnaire_edited_file_path = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    hoa_property = relationship("HoaProperty", back_populates="applications")
    forms = relationship(
        "PropertyOwnerForm", back_populates="application", cascade="all, delete-orphan",
    )
    notifications = relationship(
        "Notification", back_populates="application", cascade="all, delete-orphan",
    )
    property_groups = relationship(
        "ApplicationPropertyGroup", back_populates="application", cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Application(id={self.id}, type='{self.application_type}')>"


class PropertyOwnerForm(Base):
    """Inspection, resale certificate, or settlement form for an application."""

    __tablename__ = "property_owner_forms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    property_group_id = Column(
        Integer,
        ForeignKey("application_property_groups.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    form_type = Column(
        Enum(FormType, name="form_type", native_enum=False),
        nullable=False,
    )
    status = Column(
        Enum(FormStatus, name="form_status", native_enum=False),
        nullable=False,
        default=FormStatus.NOT_STARTED,
    )
    form_data = Column(JSON, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    application = relationship("Application", back_populates="forms")
    property_group = relationship("ApplicationPropertyGroup", back_populates="forms")

    def __repr__(self):
        return (
            f"<PropertyOwnerForm(id={self.id}, app_id={self.application_id}, "
            f"type='{self.form_type}', status='{self.status}')>"
        )


class Notification(Base):
    """Record of an outbound email / approval event."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    notification_type = Column(
        Enum(NotificationType, name="notification_type", native_enum=False),
        nullable=False,
    )
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    application = relationship("Application", back_populates="notifications")

    def __repr__(self):
        return f"<Notification(id={self.id}, type='{self.notification_type}')>"


class ApplicationPropertyGroup(Base):
    """One property within a multi-community application."""

    __tablename__ = "application_property_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    property_id = Column(
        Integer, ForeignKey("hoa_properties.id", ondelete="SET NULL"), nullable=True,
    )
    property_name = Column(String(255), nullable=True)
    property_location = Column(String(255), nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)
    status = Column(
        Enum(PropertyGroupStatus, name="property_group_status", native_enum=False),
        nullable=False,
        default=PropertyGroupStatus.PENDING,
    )
    pdf_status = Column(String(50), nullable=True)
    pdf_url = Column(Text, nullable=True)
    pdf_completed_at = Column(DateTime(timezone=True), nullable=True)
    email_status = Column(String(50), nullable=True)
    email_completed_at = Column(DateTime(timezone=True), nullable=True)
    form_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    application = relationship("Application", back_populates="property_groups")
    forms = relationship("PropertyOwnerForm", back_populates="property_group")

    def __repr__(self):
        return (
            f"<ApplicationPropertyGroup(id={self.id}, app_id={self.application_id}, "
            f"primary={self.is_primary}, status='{self.status}')>"
        )
