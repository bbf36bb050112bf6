from __future__ import annotations

import json
from typing import Any, Dict

import pytest

from tests.helpers import make_png, make_raw_payload


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def raw_payload() -> Dict[str, Any]:
    return make_raw_payload()


@pytest.fixture
def raw_payload_text(raw_payload) -> str:
    return json.dumps(raw_payload)
