from pathlib import Path

import pytest

from nattrack.local_addrs import LocalAddresses

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture
def sample_path():
    return DATA_DIR / "ip_conntrack"


@pytest.fixture
def sample_text(sample_path):
    return sample_path.read_text(encoding="utf-8")


@pytest.fixture
def router_addrs():
    # a small NAT router: LAN side 192.168.1.1, WAN side 203.0.113.9
    return LocalAddresses.from_addresses(["127.0.0.1/8", "192.168.1.1/24", "203.0.113.9/24", "::1/128"])
