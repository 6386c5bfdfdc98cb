import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from services.errors import Unexpected

logger = logging.getLogger(__name__)


def commit(on_integrity_error=None):
    """
    Commit the current unit of work.

    A uniqueness violation becomes ``on_integrity_error()`` (a BookingError
    factory) when one is given; any other storage failure is rolled back and
    surfaced as ``Unexpected``.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if on_integrity_error is not None:
            logger.info("Integrity error on commit: %s", exc.orig)
            raise on_integrity_error()
        logger.exception("Unexpected integrity error on commit")
        raise Unexpected()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Storage failure on commit")
        raise Unexpected()
