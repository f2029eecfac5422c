from immomatch.models.client import Client, Buyer
from immomatch.models.property import Property
from immomatch.models.shared_property import SharedProperty, SharedPropertyNote
from immomatch.models.match import Match

__all__ = ["Client", "Buyer", "Property", "SharedProperty", "SharedPropertyNote", "Match"]
