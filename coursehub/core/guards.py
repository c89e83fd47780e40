from decimal import Decimal
from typing import Optional

from coursehub.core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    ReferentialIntegrityError,
    ValidationError,
)
from coursehub.schemas.actor import ActorContext
from coursehub.schemas.common import NOT_FOUND, DeleteResult


def require_admin(actor: ActorContext) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError("Admin access required", code="ADMIN_REQUIRED")


def require_instructor(actor: ActorContext) -> int:
    """Return the actor's instructor id or refuse."""
    if not actor.is_instructor:
        raise PermissionDeniedError(
            "Instructor access required", code="INSTRUCTOR_REQUIRED"
        )
    return actor.instructor_id


def require_text(value: Optional[str], field: str = "title") -> str:
    if value is None or not value.strip():
        raise ValidationError(
            f"{field.replace('_', ' ').capitalize()} must not be empty",
            code="BLANK_FIELD",
            field=field,
        )
    return value.strip()


def require_order_no(value: Optional[int]) -> int:
    if value is None or value < 1:
        raise ValidationError(
            "Order number must be a positive integer",
            code="INVALID_ORDER_NO",
            field="order_no",
        )
    return value


def require_price(
    price: Optional[Decimal], promo_price: Optional[Decimal]
) -> None:
    if price is None or price < 0:
        raise ValidationError(
            "Price must be zero or positive", code="NEGATIVE_PRICE", field="price"
        )
    if promo_price is not None:
        if promo_price < 0:
            raise ValidationError(
                "Promo price must be zero or positive",
                code="NEGATIVE_PRICE",
                field="promo_price",
            )
        if promo_price > price:
            raise ValidationError(
                "Promo price cannot exceed the regular price",
                code="PROMO_ABOVE_PRICE",
                field="promo_price",
            )


def ensure_deleted(result: DeleteResult, entity: str) -> None:
    """Turn a refused safe delete into the matching boundary error."""
    if result.ok:
        return
    if result.reason == NOT_FOUND:
        raise NotFoundError(f"{entity} not found")
    raise ReferentialIntegrityError(
        f"{entity} cannot be deleted: {result.reason.replace('_', ' ').lower()}",
        code=result.reason,
    )
