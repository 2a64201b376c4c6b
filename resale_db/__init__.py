# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, SessionLocal, get_db
from .enums import (
    ApplicationStatus,
    ApplicationType,
    FormStatus,
    FormType,
    NotificationType,
    PackageType,
    PropertyGroupStatus,
    SubmitterType,
)
from .models import (
    Application,
    ApplicationPropertyGroup,
    HoaProperty,
    Notification,
    PropertyOwnerForm,
)

__all__ = [
    "Base",
    "SessionLocal",
    "get_db",
    "__version__",
    # Enums
    "ApplicationStatus",
    "ApplicationType",
    "FormStatus",
    "FormType",
    "NotificationType",
    "PackageType",
    "PropertyGroupStatus",
    "SubmitterType",
    # Models
    "Application",
    "ApplicationPropertyGroup",
    "HoaProperty",
    "Notification",
    "PropertyOwnerForm",
]
