# This project was developed with assistance from AI tools.
"""Application variant dispatch.

Classifies an application once into the ladder it is tracked against.
An unrecognised application type is a recoverable classification error:
the standard ladder is used and the error is reported alongside, so the
rest of the status view still renders.
"""

import logging

from resale_db.enums import ApplicationType, SubmitterType

from ..schemas.snapshot import ApplicationSnapshot
from ..schemas.workflow import Variant, VariantResolution

logger = logging.getLogger(__name__)

_KNOWN_APPLICATION_TYPES = {t.value for t in ApplicationType}


def is_settlement_application(snapshot: ApplicationSnapshot) -> bool:
    """Settlement agents submit, or the type itself is a settlement type."""
    if snapshot.submitter_type == SubmitterType.SETTLEMENT.value:
        return True
    return bool(snapshot.application_type and snapshot.application_type.startswith("settlement"))


def is_multi_community_display(snapshot: ApplicationSnapshot) -> bool:
    """Multi-community only when flagged AND more than one property group exists.

    A flagged application with zero or one group is shown on the standard
    (or settlement) ladder.
    """
    flagged = (
        snapshot.is_multi_community
        or snapshot.application_type == ApplicationType.MULTI_COMMUNITY.value
    )
    return flagged and len(snapshot.property_groups) > 1


def resolve_variant(snapshot: ApplicationSnapshot) -> VariantResolution:
    """Pick exactly one ladder for the application."""
    app_type = snapshot.application_type
    settlement = is_settlement_application(snapshot)

    classification_error = None
    if app_type is not None and app_type not in _KNOWN_APPLICATION_TYPES and not settlement:
        classification_error = f"Unknown application type '{app_type}'; using standard workflow"
        logger.warning(
            "Application %s has unknown application_type %r, defaulting to standard ladder",
            snapshot.id,
            app_type,
        )

    if app_type == ApplicationType.LENDER_QUESTIONNAIRE.value:
        variant = Variant.LENDER_QUESTIONNAIRE
    elif is_multi_community_display(snapshot):
        # Checked before settlement so settlement multi-community apps use the group ladder
        variant = Variant.MULTI_COMMUNITY
    elif settlement:
        variant = Variant.SETTLEMENT
    else:
        variant = Variant.STANDARD

    return VariantResolution(
        variant=variant,
        is_settlement=settlement,
        classification_error=classification_error,
    )
