"""
Core configuration management
"""
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Command sender settings"""

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Paths
    project_root: Path = Path(__file__).parent.parent
    log_dir: Path = project_root / "logs"
    log_level: str = "INFO"

    # Transport
    connect_timeout_sec: float = 5.0
    udp_bind_host: str = "0.0.0.0"
    tcp_read_size: int = 4096

    # Initial target, applied when the API server starts
    target_host: Optional[str] = None
    target_port: int = 7000
    target_transport: str = "tcp"

    # Standalone host
    max_status_history: int = 50

    class Config:
        env_prefix = "TCPUDP_"
        env_file = ".env"


settings = Settings()
