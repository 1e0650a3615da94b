#!/usr/bin/env python3
"""
Reactor configuration

Pydantic schema for the parameters a range order reactor is deployed with.
"""

from pydantic import BaseModel, Field, field_validator

from ..core.uniswap_v3_math import FEE_TICK_SPACING


class ReactorConfig(BaseModel):
    """Deployment parameters of a range order reactor"""
    collateral_asset: str = Field(description="Address of the collateral (reference) token")
    underlying_asset: str = Field(description="Address of the hedged token")
    pool_fee: int = Field(default=3000, description="Fee tier of the pool, in pips")
    range_width: int = Field(default=1, ge=1, description="Width of each range order, in tick spacings")
    only_authorized_fulfill: bool = Field(default=False, description="Restrict fulfillment to managers")

    @field_validator('pool_fee')
    @classmethod
    def validate_pool_fee(cls, v):
        if v not in FEE_TICK_SPACING:
            raise ValueError(f"pool_fee must be one of {sorted(FEE_TICK_SPACING)}")
        return v

    @field_validator('underlying_asset')
    @classmethod
    def validate_distinct_assets(cls, v, info):
        collateral = info.data.get('collateral_asset')
        if collateral is not None and collateral.lower() == v.lower():
            raise ValueError("collateral and underlying assets must differ")
        return v
