from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080


@dataclass
class ApiConfig:
    """
    Where the completion server lives and how to authenticate against it.
    One config per backend instance.
    """
    host: str = DEFAULT_HOST
    port: Optional[int] = DEFAULT_PORT
    scheme: str = "http"
    api_key: Optional[str] = None
    api_key_env_var: str = "LLAMA_API_KEY"
    timeout: float = 120.0
    extra_headers: Dict[str, str] = field(default_factory=dict)
    extra_query: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, **overrides) -> "ApiConfig":
        port = os.getenv("LLAMA_PORT")
        values = {
            "host": os.getenv("LLAMA_HOST", DEFAULT_HOST),
            "port": int(port) if port else DEFAULT_PORT,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def api_base(self) -> str:
        if self.port is None:
            return f"{self.scheme}://{self.host}"
        return f"{self.scheme}://{self.host}:{self.port}"

    def url(self, path: str) -> str:
        return f"{self.api_base}/{path.lstrip('/')}"

    def resolved_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        return os.getenv(self.api_key_env_var) or None

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        api_key = self.resolved_api_key()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        headers.update(self.extra_headers)
        return headers

    def query(self) -> Dict[str, str]:
        return dict(self.extra_query)


__all__ = ["ApiConfig", "DEFAULT_HOST", "DEFAULT_PORT"]
