"""
Wire every component from one Config.

    app = build(Config.from_env(), writer=signer_backend, addresses=pda_deriver)
    try:
        balance = await app.wallet.balance(address)
    finally:
        await app.aclose()

The transaction writer and the PDA deriver are external collaborators and
must be supplied. Everything else (file storage under `data_dir`, keystore,
JSON-RPC reader, vault registry, token list) is built from the config unless
an instance is passed in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .chain.base import AddressDeriver, ChainReader, ChainWriter
from .chain.rpc import RpcChainReader
from .config import Config
from .multisig.registry import VaultRegistry
from .multisig.service import MultisigService
from .storage import FileStorage, StorageBackend
from .tokens import TokenListCache
from .wallet.account import WalletService
from .wallet.keystore import Keystore


@dataclass
class App:
    config: Config
    storage: StorageBackend
    keystore: Keystore
    reader: ChainReader
    registry: VaultRegistry
    multisig: MultisigService
    tokens: TokenListCache
    wallet: WalletService
    owns_reader: bool = field(default=False, repr=False)

    async def aclose(self) -> None:
        if self.owns_reader and isinstance(self.reader, RpcChainReader):
            await self.reader.aclose()


def build(
    config: Optional[Config] = None,
    *,
    writer: ChainWriter,
    addresses: AddressDeriver,
    reader: Optional[ChainReader] = None,
    storage: Optional[StorageBackend] = None,
    logger: Optional[logging.Logger] = None,
) -> App:
    config = config or Config.from_env()
    log = logger or logging.getLogger("solvault.app")
    storage = storage if storage is not None else FileStorage.from_config(config)
    owns_reader = reader is None
    reader = reader if reader is not None else RpcChainReader.from_config(config)
    registry = VaultRegistry.from_config(storage, config)
    tokens = TokenListCache.from_config(config)
    app = App(
        config=config,
        storage=storage,
        keystore=Keystore.from_config(config, storage),
        reader=reader,
        registry=registry,
        multisig=MultisigService(reader, writer, addresses, registry, config),
        tokens=tokens,
        wallet=WalletService(reader, writer, tokens),
        owns_reader=owns_reader,
    )
    log.info("solvault ready", extra={"data_dir": str(config.data_dir), "rpc": config.rpc_url})
    return app


__all__ = ["App", "build"]
