from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import ValidationError

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_key(text: Optional[str]) -> str:
    return _WHITESPACE_RE.sub(" ", (text or "").lower()).strip()


def coerce_price(raw: Any) -> int:
    if raw is None or isinstance(raw, bool):
        return 0
    try:
        value = int(float(str(raw).strip() or 0))
    except (ValueError, OverflowError):
        return 0
    return max(0, value)


class Tier(str, Enum):
    STRICT = "strict"
    SOFT = "soft"
    CATEGORY = "category"


@dataclass(frozen=True)
class SearchQuery:
    text: str
    min_price: int = 0
    max_price: int = 0

    @classmethod
    def from_params(cls, text: Any, min_price: Any = 0, max_price: Any = 0) -> "SearchQuery":
        return cls(
            text=str(text or "").strip(),
            min_price=coerce_price(min_price),
            max_price=coerce_price(max_price),
        )

    def validate(self) -> None:
        if not self.text.strip():
            raise ValidationError("product_name is required (aliases: query, q).")
        if self.min_price > 0 and self.max_price > 0 and self.min_price > self.max_price:
            raise ValidationError("min_price must not be greater than max_price.")

    def accepts_price(self, price: int) -> bool:
        if self.min_price > 0 and price < self.min_price:
            return False
        if self.max_price > 0 and price > self.max_price:
            return False
        return True


@dataclass(frozen=True)
class Identity:
    element_id: Optional[str]
    title_key: str
    shop_key: str = ""

    @classmethod
    def of(cls, title: str, shop_name: str = "", element_id: Optional[str] = None) -> "Identity":
        return cls(
            element_id=(element_id or "").strip() or None,
            title_key=normalize_key(title),
            shop_key=normalize_key(shop_name),
        )

    @property
    def key(self) -> Tuple[str, ...]:
        if not self.shop_key:
            return (self.title_key,)
        return (self.title_key, self.shop_key)


@dataclass
class ListingRow:
    index: int
    identity: Identity
    title: str
    shop_name: str
    price: int
    sold_count: int
    commission: int
    image_url: Optional[str] = None
    handle: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class Candidate:
    identity: Identity
    title: str
    shop_name: str
    price: int
    sold_count: int
    commission: int
    image_url: Optional[str]
    tier: Tier

    @classmethod
    def from_row(cls, row: ListingRow, tier: Tier) -> "Candidate":
        return cls(
            identity=row.identity,
            title=row.title,
            shop_name=row.shop_name,
            price=row.price,
            sold_count=row.sold_count,
            commission=row.commission,
            image_url=row.image_url,
            tier=tier,
        )


@dataclass
class RankedItem:
    candidate: Candidate
    affiliate_url: Optional[str] = None

    @property
    def identity(self) -> Identity:
        return self.candidate.identity

    def to_output(self) -> Dict[str, Any]:
        c = self.candidate
        return {
            "product_name": c.title,
            "shop_name": c.shop_name,
            "price": c.price,
            "sold_count": c.sold_count,
            "affiliate_url": self.affiliate_url,
            "image_url": c.image_url,
        }
