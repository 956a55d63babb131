"""Pagination and sort argument handling shared by list endpoints."""
import enum
import math
from datetime import datetime
from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from storefront.exceptions import InvalidArgumentError
from storefront.utils.formatters import to_money


class SortOrder(enum.Enum):
    ASC = 'asc'
    DESC = 'desc'


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def parse_page(page: Any = None, limit: Any = None, default_limit: int = 10, max_limit: int = 100) -> PageRequest:
    """Validate page >= 1 and 1 <= limit <= max_limit."""
    page = _to_int(page, 'page', default=1)
    limit = _to_int(limit, 'limit', default=default_limit)
    if page < 1:
        raise InvalidArgumentError('page must be greater than or equal to 1')
    if limit < 1 or limit > max_limit:
        raise InvalidArgumentError(f'limit must be between 1 and {max_limit}')
    return PageRequest(page=page, limit=limit)


def parse_enum(enum_cls: Type[enum.Enum], value: Optional[str], field: str, default=None):
    """Map a raw string onto an enum member by value, rejecting unknown values."""
    if value is None or value == '':
        return default
    for member in enum_cls:
        if member.value == value:
            return member
    allowed = ', '.join(m.value for m in enum_cls)
    raise InvalidArgumentError(f'{field} must be one of: {allowed}')


def paginated(data: List[Dict[str, Any]], total: int, page_request: PageRequest) -> Dict[str, Any]:
    total_pages = math.ceil(total / page_request.limit) if total else 0
    return {
        'data': data,
        'total': total,
        'page': page_request.page,
        'limit': page_request.limit,
        'totalPages': total_pages,
        'hasNext': page_request.page < total_pages,
        'hasPrevious': page_request.page > 1,
    }


def _to_int(value: Any, field: str, default: int) -> int:
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise InvalidArgumentError(f'{field} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f'{field} must be an integer')


def parse_datetime(value: Optional[str], field: str) -> Optional[datetime]:
    """ISO-8601 date or datetime query argument."""
    if value is None or value == '':
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (TypeError, ValueError):
        raise InvalidArgumentError(f'{field} must be an ISO-8601 date')


def parse_amount(value: Any, field: str) -> Optional[Decimal]:
    if value is None or value == '':
        return None
    try:
        amount = to_money(value)
    except ValueError:
        raise InvalidArgumentError(f'{field} must be a number')
    if amount < 0:
        raise InvalidArgumentError(f'{field} must be greater than or equal to 0')
    return amount
