"""
Market Resolver - maps a human-readable option label to a child market.

Parent topics on the exchange group several binary child markets ("No
change", "25 bps decrease", ...). Strategies are configured by label, but
depth and order queries need the child's question id and outcome tokens.
"""
from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import parse_qs, urlparse

import structlog

from ebbtide.core.errors import ResolutionError, TransientIOError
from ebbtide.domain.models import MarketRef
from ebbtide.integrations.opinion.client import OpinionClient
from ebbtide.services.metrics import MetricsEmitter

log = structlog.get_logger()


def topic_id_from_url(url: str) -> Optional[str]:
    """Extract the parent topic id from a market page URL.

    >>> topic_id_from_url("https://app.opinion.trade/detail?topicId=61&type=multi")
    '61'
    """
    if not url:
        return None
    values = parse_qs(urlparse(url).query).get("topicId")
    if not values or not values[0].strip():
        return None
    return values[0].strip()


def _optional_price(value) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _labels(child: dict) -> list[str]:
    return [
        str(child[key]).strip()
        for key in ("title", "titleShort")
        if child.get(key)
    ]


class MarketResolver:
    """Resolves option labels against the parent topic's child list.

    Matching is exact (title or short title) over the whole list first,
    then substring; the first match in list order wins. No retries: a
    failure is fatal for the cycle that asked.
    """

    def __init__(
        self,
        client: OpinionClient,
        metrics: Optional[MetricsEmitter] = None,
    ) -> None:
        self._client = client
        self._metrics = metrics
        self._log = log.bind(component="market_resolver")

    async def resolve_market(self, topic_id: Optional[str], option_label: str) -> MarketRef:
        """Resolve an option label to a child market reference.

        Args:
            topic_id: Parent topic id.
            option_label: Human-readable label of the child market.

        Returns:
            MarketRef for the first matching child.

        Raises:
            ResolutionError: Missing topic, failed request, malformed tree,
                or no child matches the label.
        """
        if not topic_id:
            raise ResolutionError("parent topic id is unknown")
        label = (option_label or "").strip()
        if not label:
            raise ResolutionError("option label is empty")

        try:
            topic = await self._client.get_topic(topic_id)
        except TransientIOError as e:
            if self._metrics:
                self._metrics.record_api_request("topic", "error")
            raise ResolutionError(f"could not load topic {topic_id}", cause=e) from e

        if self._metrics:
            self._metrics.record_api_request("topic", "success")

        children = topic.get("childList")
        if not isinstance(children, list):
            raise ResolutionError(f"topic {topic_id} has no child market list")
        children = [c for c in children if isinstance(c, dict)]

        child = self._match(children, label)
        if child is None:
            available = [c.get("title") for c in children]
            self._log.warning(
                "option_not_found",
                topic_id=topic_id,
                label=label,
                available=available,
            )
            raise ResolutionError(f"no child market of topic {topic_id} matches {label!r}")

        try:
            market = MarketRef(
                topic_id=str(topic_id),
                question_id=str(child["questionId"]),
                title=str(child.get("title") or label),
                yes_token_id=str(child["yesPos"]),
                no_token_id=str(child["noPos"]),
                yes_price=_optional_price(child.get("yesMarketPrice")),
                no_price=_optional_price(child.get("noMarketPrice")),
            )
        except KeyError as e:
            raise ResolutionError(
                f"child market {child.get('title')!r} is missing {e.args[0]}"
            ) from e

        self._log.info(
            "market_resolved",
            topic_id=topic_id,
            label=label,
            title=market.title,
            question_id=market.question_id,
        )
        return market

    def _match(self, children: list[dict], label: str) -> Optional[dict]:
        for child in children:
            if label in _labels(child):
                return child

        candidates = [
            child for child in children
            if any(label in text for text in _labels(child))
        ]
        if len(candidates) > 1:
            self._log.warning(
                "option_label_ambiguous",
                label=label,
                candidates=[c.get("title") for c in candidates],
                chosen=candidates[0].get("title"),
            )
        return candidates[0] if candidates else None
