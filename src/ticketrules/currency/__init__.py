"""Exchange rates: provider protocol, Frankfurter client, session cache."""

from ticketrules.currency.base import RateProvider
from ticketrules.currency.cache import RateCache
from ticketrules.currency.frankfurter import FrankfurterRateProvider

__all__ = ["RateProvider", "RateCache", "FrankfurterRateProvider"]
