"""
ExtraSettings: per-request export options plus the lazily created filter
script runtime/context.

One instance per conversion request. The script runtime and context are
created on the first eval_filter_function() call and reused until the
instance is discarded; they are never replaced while it lives.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr, model_validator

from subconv.core.config import settings
from subconv.core.errors import ScriptEngineInitError
from subconv.core.node_filter import run_node_filter
from subconv.engines.script.runtime import ScriptContext, ScriptRuntime
from subconv.models import Proxy, RegexMatchConfig

_LOG = logging.getLogger(__name__)

DEFAULT_CLASH_STYLE = "flow"


class ExtraSettings(BaseModel):
    """Options for one subscription export."""

    enable_rule_generator: bool = True
    overwrite_original_rules: bool = False
    rename_array: list[RegexMatchConfig] = Field(default_factory=list)
    emoji_array: list[RegexMatchConfig] = Field(default_factory=list)
    add_emoji: bool = False
    remove_emoji: bool = False
    append_proxy_type: bool = False
    nodelist: bool = False
    sort_flag: bool = False
    filter_deprecated: bool = False
    clash_new_field_name: bool = True
    clash_script: bool = False
    surge_ssr_path: str = ""
    managed_config_prefix: str = ""
    quanx_dev_id: str = ""
    # Tri-state: None leaves the node's own value alone
    udp: bool | None = None
    tfo: bool | None = None
    skip_cert_verify: bool | None = None
    tls13: bool | None = None
    clash_classical_ruleset: bool = False
    sort_script: str = ""
    clash_proxies_style: str = DEFAULT_CLASH_STYLE
    clash_proxy_groups_style: str = DEFAULT_CLASH_STYLE
    authorized: bool = False

    _script_runtime: ScriptRuntime | None = PrivateAttr(default=None)
    _script_context: ScriptContext | None = PrivateAttr(default=None)

    @model_validator(mode="before")
    @classmethod
    def defaults_from_global_settings(cls, data: Any) -> Any:
        """Fill unset fields from the global settings as they are right now; explicit values win."""
        if not isinstance(data, dict):
            return data
        defaults = {
            "enable_rule_generator": settings.ENABLE_RULE_GENERATOR,
            "overwrite_original_rules": settings.OVERWRITE_ORIGINAL_RULES,
            "surge_ssr_path": settings.SURGE_SSR_PATH,
            "clash_proxies_style": settings.CLASH_PROXIES_STYLE or DEFAULT_CLASH_STYLE,
            "clash_proxy_groups_style": settings.CLASH_PROXY_GROUPS_STYLE or DEFAULT_CLASH_STYLE,
        }
        return {**defaults, **data}

    def __copy__(self) -> "ExtraSettings":
        """Copies start without script state; a context belongs to one instance only."""
        copied = super().__copy__()
        copied._script_runtime = None
        copied._script_context = None
        return copied

    def __deepcopy__(self, memo: dict[int, Any] | None = None) -> "ExtraSettings":
        # Context globals hold modules, which cannot be deep-copied
        runtime, context = self._script_runtime, self._script_context
        self._script_runtime = None
        self._script_context = None
        try:
            return super().__deepcopy__(memo)
        finally:
            self._script_runtime = runtime
            self._script_context = context

    @property
    def script_runtime(self) -> ScriptRuntime | None:
        return self._script_runtime

    @property
    def script_context(self) -> ScriptContext | None:
        return self._script_context

    def ensure_script_context(self) -> ScriptContext:
        """Create the runtime/context pair on first use; afterwards return the same context."""
        if self._script_context is None:
            try:
                runtime = ScriptRuntime()
                context = runtime.new_context()
            except Exception as e:
                _LOG.error("Script engine init failed: %s", e)
                raise ScriptEngineInitError(f"Script engine init failed: {e}") from e
            self._script_runtime = runtime
            self._script_context = context
        return self._script_context

    def eval_filter_function(self, nodes: list[Proxy], source: str) -> None:
        """
        Keep only the nodes for which the script's filter(node) returns True.
        Raises a FilterError subclass and leaves nodes unchanged if the script
        cannot be initialized, evaluated, or defines no filter.
        """
        context = self.ensure_script_context()
        run_node_filter(context, nodes, source)
