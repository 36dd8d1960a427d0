"""
P2P advertisement models.

Filters know how to turn themselves into request parameters; results wrap
the upstream `{code, msg, data, page}` envelope.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from ..constants import (
    ADV_STATUSES,
    DEFAULT_COIN_ID,
    DEFAULT_FIAT_UNIT,
    DEFAULT_OWN_ADS_LIMIT,
    DEFAULT_PAGE,
    SIDES,
    SUCCESS_CODE,
)
from ..exceptions import ValidationError
from ..utils import sanitize_dict

Scalar = Union[str, int, float, bool, Decimal]


@dataclass(frozen=True)
class Credential:
    """API key / secret pair. Both values are masked in repr."""
    api_key: str
    secret_key: str

    def validate(self) -> None:
        if not self.api_key or not self.secret_key:
            raise ValidationError("API Key and Secret Key are required")

    def __repr__(self) -> str:
        return "Credential(api_key='***', secret_key='***')"


def normalize_side(side: Optional[str]) -> Optional[str]:
    """Upper-case a trade side, rejecting anything but BUY/SELL. Empty means no side."""
    if side is None or side == "":
        return None
    normalized = str(side).strip().upper()
    if normalized not in SIDES:
        raise ValidationError("side must be BUY or SELL")
    return normalized


def _positive_int(name: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if number < 1:
        raise ValidationError(f"{name} must be >= 1, got {number}")
    return number


@dataclass(frozen=True)
class MarketAdsFilter:
    """Filter criteria for market-wide ads."""
    fiat_unit: str = DEFAULT_FIAT_UNIT
    coin_id: str = DEFAULT_COIN_ID
    page: int = DEFAULT_PAGE
    amount: Optional[Scalar] = None
    quantity: Optional[Scalar] = None
    country_code: Optional[str] = None
    pay_method: Optional[str] = None
    follow: Optional[bool] = None

    def __post_init__(self):
        object.__setattr__(self, "page", _positive_int("page", self.page))
        if not self.fiat_unit:
            raise ValidationError("fiatUnit is required")
        if not self.coin_id:
            raise ValidationError("coinId is required")

    def to_params(self, side: Optional[str] = None) -> Dict[str, Scalar]:
        """Request parameters in upstream naming, empty values dropped."""
        return sanitize_dict({
            "fiatUnit": self.fiat_unit,
            "side": side,
            "coinId": self.coin_id,
            "countryCode": self.country_code,
            "payMethod": self.pay_method,
            "amount": self.amount,
            "quantity": self.quantity,
            "page": self.page,
            "follow": self.follow,
        })


@dataclass(frozen=True)
class OwnAdsFilter:
    """Filter criteria for the merchant's own ads."""
    coin_id: str = DEFAULT_COIN_ID
    adv_status: Optional[str] = None  # OPEN, CLOSE or empty for all
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_OWN_ADS_LIMIT

    def __post_init__(self):
        object.__setattr__(self, "page", _positive_int("page", self.page))
        object.__setattr__(self, "limit", _positive_int("limit", self.limit))
        if self.adv_status:
            status = str(self.adv_status).strip().upper()
            if status not in ADV_STATUSES:
                raise ValidationError("advStatus must be OPEN, CLOSE or empty")
            object.__setattr__(self, "adv_status", status)

    def to_params(self) -> Dict[str, Scalar]:
        return sanitize_dict({
            "coinId": self.coin_id,
            "advStatus": self.adv_status,
            "page": self.page,
            "limit": self.limit,
        })


@dataclass(frozen=True)
class PageInfo:
    """Pagination block of an envelope."""
    curr_page: int
    total_page: int

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["PageInfo"]:
        if not isinstance(data, dict):
            return None
        return cls(
            curr_page=int(data.get("currPage") or 0),
            total_page=int(data.get("totalPage") or 0),
        )


@dataclass(frozen=True)
class AdListingResult:
    """Successful upstream envelope."""
    code: int
    data: Any
    msg: Optional[str] = None
    page: Optional[PageInfo] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def success(self) -> bool:
        return self.code == SUCCESS_CODE

    @property
    def ads(self) -> List[Any]:
        return self.data if isinstance(self.data, list) else []

    @classmethod
    def from_envelope(cls, envelope: Dict[str, Any]) -> "AdListingResult":
        return cls(
            code=envelope.get("code"),
            data=envelope.get("data"),
            msg=envelope.get("msg"),
            page=PageInfo.from_dict(envelope.get("page")),
            raw=envelope,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Render back to the envelope shape the dashboard consumes."""
        result: Dict[str, Any] = {"code": self.code, "data": self.data}
        if self.msg is not None:
            result["msg"] = self.msg
        if self.page is not None:
            result["page"] = {"currPage": self.page.curr_page, "totalPage": self.page.total_page}
        return result


@dataclass(frozen=True)
class SideError:
    """Captured failure of one side of a dual-side fetch."""
    error: str
    kind: str
    code: Any = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"error": self.error, "kind": self.kind}
        if self.code is not None:
            result["code"] = self.code
        return result


SideOutcome = Union[AdListingResult, SideError]


@dataclass(frozen=True)
class BothSidesResult:
    """BUY and SELL outcomes, each evaluated independently."""
    buy: SideOutcome
    sell: SideOutcome

    def to_dict(self) -> Dict[str, Any]:
        return {"buy": self.buy.to_dict(), "sell": self.sell.to_dict()}


@dataclass(frozen=True)
class ConnectOutcome:
    """Result of a connect attempt."""
    success: bool
    message: str
    gateway: Optional[str] = None
    base_url: Optional[str] = None
