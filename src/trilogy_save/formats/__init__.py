"""Per-title format adapters."""

from ..document import Title
from .base import AdapterState, FormatAdapter
from .me1 import Me1Adapter, Me1Container, is_container
from .me1le import Me1LeAdapter
from .me2 import Me2Adapter
from .me3 import Me3Adapter

ADAPTERS = {
    Title.ME1: Me1Adapter,
    Title.ME1LE: Me1LeAdapter,
    Title.ME2: Me2Adapter,
    Title.ME3: Me3Adapter,
}
