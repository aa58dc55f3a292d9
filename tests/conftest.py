"""Shared test fixtures for merkledrop."""

from pathlib import Path

import pytest

from merkledrop_core.config.models import MerkledropConfig
from merkledrop_core.merkle import StandardMerkleTree

ADDR_A = "0x" + "A" * 39 + "1"
ADDR_B = "0x" + "B" * 39 + "2"
ADDR_C = "0x" + "C" * 39 + "3"
ADDR_D = "0x" + "d" * 39 + "4"
ADDR_E = "0x" + "e" * 39 + "5"

AIRDROP_ENCODING = ["address", "uint256", "bool"]
DISTRIBUTION_ENCODING = ["address", "uint256"]


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path_factory, monkeypatch):
    """Keep a developer's ~/.merkledrop/config.yaml out of the tests."""
    monkeypatch.setenv("HOME", str(tmp_path_factory.mktemp("home")))


@pytest.fixture
def sample_config():
    return MerkledropConfig()


@pytest.fixture
def airdrop_values():
    return [
        (ADDR_A, "1000", True),
        (ADDR_B, "2000", False),
    ]


@pytest.fixture
def distribution_values():
    return [
        (ADDR_A, "1000"),
        (ADDR_B, "2500"),
        (ADDR_C, "5000"),
        (ADDR_D, "115792089237316195423570985008687907853269984665640564039457584007913129639935"),
        (ADDR_E, "1"),
    ]


@pytest.fixture
def airdrop_tree(airdrop_values):
    return StandardMerkleTree.of(airdrop_values, AIRDROP_ENCODING)


@pytest.fixture
def distribution_tree(distribution_values):
    return StandardMerkleTree.of(distribution_values, DISTRIBUTION_ENCODING)


@pytest.fixture
def airdrop_csv(tmp_path: Path) -> Path:
    path = tmp_path / "airdrop.csv"
    path.write_text(
        "address,amount,isTop80\n"
        f"{ADDR_A},1000,true\n"
        f"{ADDR_B},2000,false\n"
        f"{ADDR_C},3000,true\n"
    )
    return path


@pytest.fixture
def distribution_csv(tmp_path: Path) -> Path:
    path = tmp_path / "distribution.csv"
    path.write_text(
        "address,amount\n"
        f"{ADDR_A},1000\n"
        f"{ADDR_B},2500\n"
        f"{ADDR_C},5000\n"
    )
    return path
