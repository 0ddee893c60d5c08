import httpx
import pytest
import respx

from solvault.config import Config
from solvault.errors import InvalidAddressError
from solvault.tokens import KNOWN_TOKENS, TOKEN_SYMBOLS, TokenListCache, resolve_mint

LIST_URL = "https://tokens.example.org/verified"
USDC = TOKEN_SYMBOLS["USDC"]
CUSTOM = "So11111111111111111111111111111111111111112"


def test_resolve_mint() -> None:
    assert resolve_mint("usdc") == USDC
    assert resolve_mint(" Bonk ") == TOKEN_SYMBOLS["BONK"]
    assert resolve_mint(CUSTOM) == CUSTOM
    with pytest.raises(InvalidAddressError) as ei:
        resolve_mint("NOTATOKEN")
    assert ei.value.details["field"] == "mint"


def test_every_symbol_has_a_valid_mint() -> None:
    for symbol, mint in TOKEN_SYMBOLS.items():
        assert resolve_mint(symbol) == mint
        assert resolve_mint(mint) == mint


@pytest.mark.asyncio
@respx.mock
async def test_fetches_once() -> None:
    route = respx.get(LIST_URL).respond(
        json=[
            {"address": USDC, "symbol": "USDC", "name": "USD Coin", "decimals": 6, "logoURI": "https://x/usdc.png"},
            {"id": CUSTOM, "symbol": "SOL", "name": "Wrapped SOL", "decimals": 9, "icon": "https://x/sol.png"},
            {"symbol": "broken"},
        ]
    )
    cache = TokenListCache(LIST_URL)
    usdc = await cache.lookup(USDC)
    assert usdc is not None and usdc.decimals == 6 and usdc.logo_uri == "https://x/usdc.png"
    assert (await cache.lookup(CUSTOM)).symbol == "SOL"
    assert await cache.lookup("missing") is None
    assert len(await cache.tokens()) == 2
    assert route.call_count == 1
    assert cache.from_fallback is False


@pytest.mark.asyncio
@respx.mock
async def test_fallback_on_failure_is_sticky() -> None:
    route = respx.get(LIST_URL).mock(side_effect=httpx.ConnectTimeout("slow"))
    async with httpx.AsyncClient() as client:
        cache = TokenListCache(LIST_URL, client=client)
        tokens = await cache.tokens()
        assert tokens == KNOWN_TOKENS
        assert cache.from_fallback
        await cache.tokens()
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_http_error_status_uses_custom_fallback() -> None:
    respx.get(LIST_URL).respond(500)
    fallback = {USDC: KNOWN_TOKENS[USDC]}
    cache = TokenListCache(LIST_URL, fallback=fallback)
    assert await cache.tokens() == fallback


@pytest.mark.asyncio
@respx.mock
async def test_caches_do_not_share_state() -> None:
    respx.get(LIST_URL).respond(503)
    empty = TokenListCache(LIST_URL, fallback={})
    default = TokenListCache(LIST_URL)
    assert await empty.tokens() == {}
    assert await default.tokens() == KNOWN_TOKENS


@pytest.mark.asyncio
@respx.mock
async def test_from_config_fetches_configured_list() -> None:
    route = respx.get(LIST_URL).respond(json=[{"address": USDC, "symbol": "USDC", "name": "USD Coin"}])
    cache = TokenListCache.from_config(Config(token_list_url=LIST_URL))
    assert cache.url == LIST_URL
    assert (await cache.lookup(USDC)).name == "USD Coin"
    assert route.call_count == 1
