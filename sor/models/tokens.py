"""Token metadata model."""

from pydantic import BaseModel, Field, field_validator

from sor.models.types import Address, normalize_address


class Token(BaseModel):
    """Token metadata as served by the token metadata service."""

    address: Address
    # Most tokens use 18 decimals, but some use fewer (USDC=6, WBTC=8)
    decimals: int = Field(default=18, ge=0, le=77)
    symbol: str = ""
    name: str | None = None

    model_config = {"frozen": True}

    @field_validator("address")
    @classmethod
    def _lowercase_address(cls, value: str) -> str:
        return normalize_address(value)
