"""
Proxy node and rule schemas shared by the conversion pipeline.

Proxy is the record handed to filter scripts; RegexMatchConfig backs the
rename/emoji rule tables of ExtraSettings.
"""

from enum import Enum
from types import SimpleNamespace
from typing import Any

from sqlmodel import Field, SQLModel


class ProxyTypeEnum(str, Enum):
    """Proxy protocols understood by the converter."""

    UNKNOWN = "unknown"
    SHADOWSOCKS = "ss"
    SHADOWSOCKSR = "ssr"
    VMESS = "vmess"
    VLESS = "vless"
    TROJAN = "trojan"
    SNELL = "snell"
    HTTP = "http"
    HTTPS = "https"
    SOCKS5 = "socks5"
    WIREGUARD = "wireguard"
    HYSTERIA = "hysteria"
    HYSTERIA2 = "hysteria2"
    TUIC = "tuic"
    ANYTLS = "anytls"


class Proxy(SQLModel):
    """One proxy server entry parsed from a subscription."""

    type: ProxyTypeEnum = Field(default=ProxyTypeEnum.UNKNOWN)
    id: int = Field(default=0)
    group_id: int = Field(default=0)
    group: str = Field(default="")
    remark: str = Field(default="")
    hostname: str = Field(default="")
    port: int = Field(default=0, ge=0, le=65535)

    # Credentials
    username: str | None = None
    password: str | None = None
    encrypt_method: str | None = None
    user_id: str | None = None
    alter_id: int = Field(default=0)

    # Transport / obfuscation
    plugin: str | None = None
    plugin_option: str | None = None
    protocol: str | None = None
    protocol_param: str | None = None
    obfs: str | None = None
    obfs_param: str | None = None
    transfer_protocol: str | None = None
    host: str | None = None
    path: str | None = None
    sni: str | None = None
    fake_type: str | None = None
    tls_secure: bool = Field(default=False)

    # Capability flags: None means "not specified by the subscription"
    udp: bool | None = None
    tcp_fast_open: bool | None = None
    allow_insecure: bool | None = None
    tls13: bool | None = None

    def to_script_value(self) -> SimpleNamespace:
        """Fresh attribute view for filter scripts (node.port, node.remark, ...). Enums become their string values."""
        return SimpleNamespace(**self.model_dump(mode="json"))

    @classmethod
    def from_script_value(cls, value: Any) -> "Proxy":
        """Inverse of to_script_value; also accepts a plain dict."""
        if isinstance(value, SimpleNamespace):
            value = vars(value)
        return cls.model_validate(value)


class RegexMatchConfig(SQLModel):
    """Rename/emoji rule: regex `match` replaced by `replace`, or decided by `script`."""

    match: str = Field(default="")
    replace: str = Field(default="")
    script: str = Field(default="")
