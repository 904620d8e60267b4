"""
subconv: scriptable proxy node filtering for subscription conversion.
"""

from subconv.core.errors import FilterError
from subconv.core.extra_settings import ExtraSettings
from subconv.models import Proxy, ProxyTypeEnum, RegexMatchConfig

__all__ = [
    "ExtraSettings",
    "FilterError",
    "Proxy",
    "ProxyTypeEnum",
    "RegexMatchConfig",
]
