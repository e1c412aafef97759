from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

import pytest


@dataclass
class FakeAuthorizer:
    """Deterministic signer recording every call."""

    supports_compression: bool = False
    user_agent: str | None = "fake-agent/1.0"
    calls: list[tuple[str, str, dict[str, str]]] = field(default_factory=list)

    def sign(self, method: str, url: str, params: Mapping[str, str]) -> str:
        self.calls.append((method, url, dict(params)))
        encoded = "&".join(f"{name}={value}" for name, value in sorted(params.items()))
        return f'Fake method="{method}", url="{url}", params="{encoded}"'


@pytest.fixture
def authorizer() -> FakeAuthorizer:
    return FakeAuthorizer()
