"""Runtime settings read from environment variables."""

import os

from pydantic import BaseModel, Field


class Settings(BaseModel):
    env: str = "development"

    # PayOS
    payos_endpoint: str = "https://api-merchant.payos.vn"
    payos_checksum_key: str = ""
    payos_payout_client_id: str = ""
    payos_payout_api_key: str = ""
    payos_payout_checksum_key: str = ""
    payos_timeout_ms: int = Field(default=10000, gt=0)

    # Sibling services
    rpc_timeout_ms: int = Field(default=3000, gt=0)
    rpc_retries: int = Field(default=2, ge=0)
    rpc_delay_ms: int = Field(default=500, ge=0)
    user_service_url: str = "http://localhost:3001"

    # Jobs
    queue_backend: str = "memory"  # memory, redis
    redis_url: str = "redis://localhost:6379/0"

    # Notifications
    chat_room_id: str = "orders"

    @property
    def payout_configured(self) -> bool:
        return bool(self.payos_payout_client_id and self.payos_payout_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "env": os.environ.get("PROTEAN_ENV") or os.environ.get("ENV"),
            "payos_endpoint": os.environ.get("PAYOS_ENDPOINT"),
            "payos_checksum_key": os.environ.get("PAYOS_CHECKSUM_KEY"),
            "payos_payout_client_id": os.environ.get("PAYOS_PAYOUT_CLIENT_ID"),
            "payos_payout_api_key": os.environ.get("PAYOS_PAYOUT_API_KEY"),
            "payos_payout_checksum_key": os.environ.get("PAYOS_PAYOUT_CHECKSUM_KEY"),
            "payos_timeout_ms": os.environ.get("PAYOS_TIMEOUT_MS"),
            "rpc_timeout_ms": os.environ.get("RPC_TIMEOUT_MS"),
            "rpc_retries": os.environ.get("RPC_RETRIES"),
            "rpc_delay_ms": os.environ.get("RPC_DELAY_MS"),
            "user_service_url": os.environ.get("USER_SERVICE_URL"),
            "queue_backend": os.environ.get("QUEUE_BACKEND"),
            "redis_url": os.environ.get("REDIS_URL"),
            "chat_room_id": os.environ.get("CHATWORK_ROOM_ID"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})
