from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from market.constants import (
    LISTING_TYPES,
    ORDER_CONFIRM_STATUSES,
    ORDER_STATUSES,
    PAYMENT_METHODS,
    REVIEW_STATUSES,
    ROLES,
    SUPPORTED_LANGUAGES,
    USER_STATUSES,
    VENDOR_LISTING_STATUSES,
)
from market.i18n import I18n

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

F = TypeVar("F", bound=BaseModel)


class _Form(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)


class LoginForm(_Form):
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)


class RegisterForm(_Form):
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)
    confirm_password: str = Field(min_length=6, alias="confirmPassword")
    first_name: str = Field(min_length=1, alias="firstName")
    last_name: str = Field(min_length=1, alias="lastName")
    language: Optional[str] = None

    @model_validator(mode="after")
    def _passwords_match(self) -> "RegisterForm":
        if self.password != self.confirm_password:
            raise ValueError("passwordMismatch")
        return self


class VendorForm(_Form):
    company_name: str = Field(min_length=2, alias="companyName")
    business_number: str = Field(min_length=1, alias="businessNumber")
    description: Optional[str] = None


class CategoryForm(_Form):
    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(pattern=SLUG_PATTERN)
    description: Optional[str] = None


class CommentForm(_Form):
    content: str = Field(min_length=1, max_length=2000)
    rating: int = Field(ge=1, le=5)


class CheckoutForm(_Form):
    payment_method: str = Field(alias="paymentMethod")

    @field_validator("payment_method")
    @classmethod
    def _known_method(cls, v: str) -> str:
        if v not in PAYMENT_METHODS:
            raise ValueError("invalidChoice")
        return v


class ConfirmOrderForm(_Form):
    status: str

    @field_validator("status")
    @classmethod
    def _confirm_status(cls, v: str) -> str:
        if v not in ORDER_CONFIRM_STATUSES:
            raise ValueError("invalidChoice")
        return v


class OrderStatusForm(_Form):
    status: str

    @field_validator("status")
    @classmethod
    def _order_status(cls, v: str) -> str:
        if v not in ORDER_STATUSES:
            raise ValueError("invalidChoice")
        return v


class ReviewForm(_Form):
    status: str
    reason: Optional[str] = None

    @field_validator("status")
    @classmethod
    def _review_status(cls, v: str) -> str:
        if v not in REVIEW_STATUSES:
            raise ValueError("invalidChoice")
        return v


class UserUpdateForm(_Form):
    status: Optional[str] = None
    role: Optional[str] = None

    @field_validator("status")
    @classmethod
    def _user_status(cls, v: Optional[str]) -> Optional[str]:
        if v and v not in USER_STATUSES:
            raise ValueError("invalidChoice")
        return v or None

    @field_validator("role")
    @classmethod
    def _user_role(cls, v: Optional[str]) -> Optional[str]:
        if v and v not in ROLES:
            raise ValueError("invalidChoice")
        return v or None


class ListingForm(_Form):
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=5000)
    price: float = Field(ge=0)
    type: str = "DIGITAL"
    category: str = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)
    status: str = "PENDING"
    download_url: Optional[str] = Field(None, alias="downloadUrl")

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: Any) -> Any:
        # из формы теги приходят одной строкой через запятую
        if isinstance(v, str):
            return [tag.strip() for tag in v.split(",") if tag.strip()]
        return v

    @field_validator("type")
    @classmethod
    def _listing_type(cls, v: str) -> str:
        if v not in LISTING_TYPES:
            raise ValueError("invalidChoice")
        return v

    @field_validator("status")
    @classmethod
    def _listing_status(cls, v: str) -> str:
        if v not in VENDOR_LISTING_STATUSES:
            raise ValueError("invalidChoice")
        return v

    @field_validator("download_url")
    @classmethod
    def _empty_url(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class ProfileForm(_Form):
    first_name: str = Field(min_length=1, max_length=100, alias="firstName")
    last_name: str = Field(min_length=1, max_length=100, alias="lastName")
    email: str = Field(pattern=EMAIL_PATTERN)
    phone: Optional[str] = Field(None, max_length=32)
    language: Optional[str] = None

    @field_validator("phone", "language")
    @classmethod
    def _empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("language")
    @classmethod
    def _known_language(cls, v: Optional[str]) -> Optional[str]:
        if v and v not in SUPPORTED_LANGUAGES:
            raise ValueError("invalidChoice")
        return v


class PasswordForm(_Form):
    current_password: str = Field(min_length=1, alias="currentPassword")
    new_password: str = Field(min_length=6, alias="newPassword")
    confirm_password: str = Field(min_length=1, alias="confirmPassword")

    @model_validator(mode="after")
    def _passwords_match(self) -> "PasswordForm":
        if self.new_password != self.confirm_password:
            raise ValueError("passwordMismatch")
        return self


def _message(error: Dict[str, Any], i18n: I18n) -> str:
    kind = error.get("type", "")
    ctx = error.get("ctx") or {}
    if kind == "value_error":
        code = str(ctx.get("error", "")) or "invalid"
        return i18n.t(f"validation.{code}")
    if kind == "string_too_short":
        return i18n.t("validation.tooShort", min=ctx.get("min_length", ""))
    if kind == "string_too_long":
        return i18n.t("validation.tooLong", max=ctx.get("max_length", ""))
    if kind == "string_pattern_mismatch":
        return i18n.t("validation.invalidFormat")
    if kind == "missing":
        return i18n.t("validation.required")
    if kind in ("greater_than_equal", "less_than_equal", "int_parsing", "float_parsing"):
        return i18n.t("validation.outOfRange")
    return i18n.t("validation.invalid")


def validate_form(form: Type[F], data: Dict[str, Any], i18n: I18n) -> Tuple[Optional[F], Dict[str, str]]:
    """Проверка формы до отправки в API. Возвращает (модель, ошибки по полям)."""
    try:
        return form.model_validate(data), {}
    except ValidationError as e:
        errors: Dict[str, str] = {}
        for err in e.errors():
            loc = err.get("loc") or ()
            # ошибка model_validator без поля -> относим к подтверждению пароля
            field = str(loc[0]) if loc else "confirmPassword"
            errors.setdefault(field, _message(err, i18n))
        return None, errors
