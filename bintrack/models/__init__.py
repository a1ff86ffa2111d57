# BinTrack — Database Models
# Import all models here for SQLAlchemy discovery

from bintrack.models.consumer import Consumer                # noqa
from bintrack.models.support_request import SupportRequest   # noqa
