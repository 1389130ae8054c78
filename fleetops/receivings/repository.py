# fleetops/receivings/repository.py

from fleetops.entries.repository import EntryRepository
from fleetops.receivings.models import Receiving


class ReceivingRepository(EntryRepository[Receiving]):
    """
    Data Access Layer for receiving entries.
    """

    model = Receiving
