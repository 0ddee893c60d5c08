from pathlib import Path

import pytest

from solvault.config import DEFAULT_PROGRAM_ID, DEFAULT_RPC_URL, Config
from solvault.errors import ConfigError

ENV_VARS = [
    "SOLVAULT_DATA_DIR",
    "SOLVAULT_RPC_URL",
    "SOLANA_RPC_URL",
    "SOLVAULT_BASE_URL",
    "APP_BASE_URL",
    "SOLVAULT_PROGRAM_ID",
    "SOLVAULT_KDF_ITERS",
    "SOLVAULT_PROPOSAL_WINDOW",
    "SOLVAULT_TIMEOUT",
    "SOLVAULT_TOKEN_LIST_URL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    cfg = Config.from_env()
    assert cfg.rpc_url == DEFAULT_RPC_URL
    assert cfg.program_id == DEFAULT_PROGRAM_ID
    assert cfg.kdf_iterations == 100_000
    assert cfg.proposal_window == 20
    assert cfg.data_dir == Path.home() / ".solvault" / "wallet-data"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SOLVAULT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SOLANA_RPC_URL", "https://api.devnet.solana.com")
    monkeypatch.setenv("APP_BASE_URL", "https://app.example.org/")
    monkeypatch.setenv("SOLVAULT_KDF_ITERS", "250000")
    monkeypatch.setenv("SOLVAULT_PROPOSAL_WINDOW", "5")
    monkeypatch.setenv("SOLVAULT_TIMEOUT", "2.5")
    cfg = Config.from_env()
    assert cfg.data_dir == tmp_path
    assert cfg.rpc_url == "https://api.devnet.solana.com"
    assert cfg.base_url == "https://app.example.org"
    assert cfg.kdf_iterations == 250_000
    assert cfg.proposal_window == 5
    assert cfg.request_timeout == 2.5


def test_prefixed_name_wins_over_legacy(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOLANA_RPC_URL", "https://legacy.example.org")
    monkeypatch.setenv("SOLVAULT_RPC_URL", "https://primary.example.org")
    assert Config.from_env().rpc_url == "https://primary.example.org"


@pytest.mark.parametrize(
    "name,value",
    [
        ("SOLVAULT_KDF_ITERS", "1000"),
        ("SOLVAULT_KDF_ITERS", "lots"),
        ("SOLVAULT_PROPOSAL_WINDOW", "0"),
        ("SOLVAULT_TIMEOUT", "-1"),
        ("SOLVAULT_RPC_URL", "ftp://example.org"),
        ("SOLVAULT_PROGRAM_ID", "not-a-key"),
    ],
)
def test_invalid_values_name_the_variable(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError) as ei:
        Config.from_env()
    assert isinstance(ei.value, ValueError)


def test_with_overrides_ignores_unknown_keys(tmp_path: Path) -> None:
    base = Config(data_dir=tmp_path)
    cfg = Config.with_overrides(base, proposal_window=3, not_a_field=True)
    assert cfg.proposal_window == 3
    assert cfg.data_dir == tmp_path
    assert cfg.to_dict()["proposal_window"] == 3
