from __future__ import annotations

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class NodeConfig(BaseModel):
    """A chain-node endpoint as declared in the settings."""

    name: str
    prefix: str


_DEFAULT_NODES = [
    NodeConfig(name="Carthagenet-GigaNode", prefix="https://testnet-tezos.giganode.io"),
    NodeConfig(name="Mainnet-GigaNode", prefix="https://mainnet-tezos.giganode.io"),
    NodeConfig(name="Dalphanet-GigaNode", prefix="https://dalphanet-tezos.giganode.io"),
    NodeConfig(name="Carthagenet-SmartPy", prefix="https://carthagenet.smartpy.io"),
    NodeConfig(name="Mainnet-SmartPy", prefix="https://mainnet.smartpy.io"),
    NodeConfig(name="Delphinet-SmartPy", prefix="https://delphinet.smartpy.io"),
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # HTTP client
    http_timeout: float = 10.0
    http_verify_ssl: bool = True  # set False behind corporate SSL-inspection proxies

    # Chain-node RPC reads (storage, script, big-map values)
    rpc_max_retries: int = 2

    # URI resolution
    ipfs_gateway: str = "https://gateway.ipfs.io/ipfs/"
    known_networks: list[str] = [
        "mainnet",
        "carthagenet",
        "delphinet",
        "dalphanet",
        "zeronet",
    ]
    debug_step_delay: float = 0.0  # pause between resolution steps, in seconds

    # Node pool (JSON list in the environment, e.g. TEZOS_NODES='[{"name": …}]')
    tezos_nodes: list[NodeConfig] = _DEFAULT_NODES
    node_probe_timeout: float = 5.0
    node_poll_interval: float = 10.0
    node_poll_growth: float = 1.4
    node_poll_max_interval: float = 90.0

    # Logging
    log_level: str = "INFO"


settings = Settings()
