from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PaymentExtra(BaseModel):
    """EIP-712 domain of the USDC contract, echoed back by x402 clients."""
    model_config = ConfigDict(frozen=True)

    name: str = "USD Coin"
    version: str = "2"


class PaymentRequirements(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    scheme: str = "exact"
    network: str
    max_amount_required: str
    resource: str
    description: str
    mime_type: str = "application/json"
    pay_to: str
    max_timeout_seconds: int = 60
    asset: str
    extra: PaymentExtra = Field(default_factory=PaymentExtra)

    def as_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class SettlementResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    success: bool = False
    payer: Optional[str] = None
    transaction: Optional[str] = None
    network: Optional[str] = None
    error_reason: Optional[str] = None


class VerificationResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    is_valid: bool = False
    payer: Optional[str] = None
    invalid_reason: Optional[str] = None
