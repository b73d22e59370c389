"""
Adapter: Swopus liquidity feed client.

Implements LiquidityFeedPort.
One GET of ``{base_url}/pairs`` returns every token and pair of the market:

    {
        "tokens": {"<externalId>": {"precision": 6, "logoUrlProxy": "/token-logos/KLV"}},
        "pairs": [{"token0_id": "...", "token1_id": "...", "pair_id": 1,
                   "reserve0": "...", "reserve1": "..."}]
    }

The client does not retry. A failed fetch aborts the sync pass that asked for it.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from app.domain.dca.entities import FeedSnapshot, LiquidPair, RawPair, TokenInfo
from app.domain.dca.errors import FeedUnavailableError
from app.domain.dca.ports import LiquidityFeedPort

logger = logging.getLogger(__name__)


def _parse_reserve(value: object) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def _parse_precision(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class SwopusFeedClient(LiquidityFeedPort):
    """HTTP client for the Swopus pairs endpoint.

    Args:
        base_url: Root URL of the feed API.
        timeout: Request timeout in seconds.
        client: Optional preconfigured ``httpx.Client`` (tests inject a
            mock transport through it).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    @property
    def base_url(self) -> str:
        return self._base_url

    def fetch_pairs(self) -> FeedSnapshot:
        """Fetch all tokens and pairs in one request.

        Returns:
            FeedSnapshot with the token map and the raw pair list.

        Raises:
            FeedUnavailableError: On transport failure, a non-2xx status
                or a body that is not a JSON object.
        """
        url = f"{self._base_url}/pairs"
        try:
            if self._client is not None:
                response = self._client.get(url, timeout=self._timeout)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Feed request to %s failed: %s", url, exc)
            raise FeedUnavailableError(str(exc)) from exc

        if not response.is_success:
            logger.warning("Feed returned HTTP %d for %s", response.status_code, url)
            raise FeedUnavailableError(
                f"HTTP {response.status_code}", status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise FeedUnavailableError("response body is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise FeedUnavailableError("response body is not a JSON object")

        snapshot = FeedSnapshot(
            tokens=self._parse_tokens(payload.get("tokens") or {}),
            pairs=self._parse_pairs(payload.get("pairs") or []),
        )
        logger.debug(
            "Feed returned %d tokens, %d pairs",
            len(snapshot.tokens),
            len(snapshot.pairs),
        )
        return snapshot

    def extract_symbol(self, external_id: Optional[str]) -> Optional[str]:
        """Derive a symbol from a feed token id.

        ``"KLV"`` -> ``"KLV"``, ``"dvk-1ab2"`` -> ``"DVK"``.
        """
        if not external_id:
            return None
        symbol = str(external_id).split("-")[0].strip().upper()
        return symbol or None

    def filter_valid_pairs(
        self, pairs: list[RawPair], min_reserve: Decimal
    ) -> list[LiquidPair]:
        """Keep pairs whose reserves both parse and are >= ``min_reserve``.

        Unparsable reserves drop the pair silently.
        """
        valid: list[LiquidPair] = []
        for pair in pairs:
            reserve0 = _parse_reserve(pair.reserve0)
            reserve1 = _parse_reserve(pair.reserve1)
            if reserve0 is None or reserve1 is None:
                continue
            if reserve0 < min_reserve or reserve1 < min_reserve:
                continue
            valid.append(
                LiquidPair(
                    token0_id=pair.token0_id,
                    token1_id=pair.token1_id,
                    pair_id=pair.pair_id,
                    reserve0=reserve0,
                    reserve1=reserve1,
                )
            )
        return valid

    def build_logo_url(self, path: Optional[str]) -> Optional[str]:
        """Return an absolute logo URL for a feed logo path."""
        if not path:
            return None
        if path.startswith("http"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    @staticmethod
    def _parse_tokens(raw: object) -> dict[str, TokenInfo]:
        if not isinstance(raw, dict):
            return {}
        tokens: dict[str, TokenInfo] = {}
        for external_id, info in raw.items():
            info = info if isinstance(info, dict) else {}
            tokens[str(external_id)] = TokenInfo(
                external_id=str(external_id),
                precision=_parse_precision(info.get("precision")),
                logo_path=info.get("logoUrlProxy"),
            )
        return tokens

    @staticmethod
    def _parse_pairs(raw: object) -> list[RawPair]:
        if not isinstance(raw, list):
            return []
        pairs: list[RawPair] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            pairs.append(
                RawPair(
                    token0_id=str(item.get("token0_id") or ""),
                    token1_id=str(item.get("token1_id") or ""),
                    pair_id=str(item.get("pair_id", "")),
                    reserve0=item.get("reserve0"),
                    reserve1=item.get("reserve1"),
                )
            )
        return pairs
