"""
Pricing calculations and rate management.

Maps Claude model names onto a fixed per-million-token price table and
computes the API value of a given amount of usage.
"""

from dataclasses import dataclass
from typing import Dict, Optional
from decimal import Decimal


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model."""
    input_cost_per_1m: Decimal  # Cost per 1M input tokens
    output_cost_per_1m: Decimal  # Cost per 1M output tokens


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for supported models.

    Key order is significant: lookups by substring take the first match.
    """
    prices: Dict[str, ModelPricing]

    def get_pricing(self, key: str) -> ModelPricing:
        """Get pricing for a canonical price-table key.

        Args:
            key: Canonical key, e.g. "claude-opus-4-1"

        Returns:
            ModelPricing for the key

        Raises:
            ValueError: If key is not in the table
        """
        if key not in self.prices:
            raise ValueError(f"Unsupported model: {key}")
        return self.prices[key]


# Fixed pricing table - no dynamic fetching
PRICING_TABLE = PricingTable({
    "claude-opus-4-1": ModelPricing(
        input_cost_per_1m=Decimal("15.00"),
        output_cost_per_1m=Decimal("75.00")
    ),
    "claude-opus-4": ModelPricing(
        input_cost_per_1m=Decimal("15.00"),
        output_cost_per_1m=Decimal("75.00")
    ),
    "claude-3-opus": ModelPricing(
        input_cost_per_1m=Decimal("15.00"),
        output_cost_per_1m=Decimal("75.00")
    ),
    "claude-3-5-opus": ModelPricing(
        input_cost_per_1m=Decimal("15.00"),
        output_cost_per_1m=Decimal("75.00")
    ),
    "claude-sonnet-4": ModelPricing(
        input_cost_per_1m=Decimal("3.00"),
        output_cost_per_1m=Decimal("15.00")
    ),
    "claude-3-sonnet": ModelPricing(
        input_cost_per_1m=Decimal("3.00"),
        output_cost_per_1m=Decimal("15.00")
    ),
    "claude-3-5-sonnet": ModelPricing(
        input_cost_per_1m=Decimal("3.00"),
        output_cost_per_1m=Decimal("15.00")
    ),
    "claude-3-haiku": ModelPricing(
        input_cost_per_1m=Decimal("0.25"),
        output_cost_per_1m=Decimal("1.25")
    ),
    "claude-3-5-haiku": ModelPricing(
        input_cost_per_1m=Decimal("0.80"),
        output_cost_per_1m=Decimal("4.00")
    ),
    "claude-instant": ModelPricing(
        input_cost_per_1m=Decimal("0.80"),
        output_cost_per_1m=Decimal("2.40")
    ),
})

# Bare family names resolve to the latest generation
LATEST_ALIASES = {
    "opus": "claude-opus-4-1",
    "sonnet": "claude-sonnet-4",
    "haiku": "claude-3-5-haiku",
}

TOKENS_PER_MILLION = Decimal("1000000")


def _key_matches(key: str, model_lower: str) -> bool:
    """Check whether a lowercased model name refers to a price-table key."""
    key_lower = key.lower()
    if key_lower in model_lower:
        return True
    if key_lower.replace("-", ".", 1) in model_lower:
        return True
    if key_lower.replace("claude-", "", 1) in model_lower:
        return True

    # Generation overrides: both version markers must appear
    if "opus-4-1" in key_lower and "opus" in model_lower and "4.1" in model_lower:
        return True
    if "opus-4" in key_lower and "opus" in model_lower and "4" in model_lower:
        return True
    if "sonnet-4" in key_lower and "sonnet" in model_lower and "4" in model_lower:
        return True
    return False


def resolve_pricing_key(model: str) -> Optional[str]:
    """Resolve a model name to its canonical price-table key.

    Args:
        model: Model name as found in the logs (any case)

    Returns:
        The first matching key, or None for unpriced models
    """
    model_lower = model.lower()
    if model_lower in LATEST_ALIASES:
        return LATEST_ALIASES[model_lower]

    for key in PRICING_TABLE.prices:
        if _key_matches(key, model_lower):
            return key
    return None


def calculate_cost(model: str, tokens_in: int, tokens_out: int) -> float:
    """Calculate the API value of model usage in USD.

    Unknown models are not an error; they cost nothing. The result is not
    rounded, display rounding is left to the formatters.

    Args:
        model: Model name (original, not the bucket)
        tokens_in: Input tokens, cache tokens included
        tokens_out: Output tokens

    Returns:
        Cost in USD
    """
    key = resolve_pricing_key(model)
    if key is None:
        return 0.0

    pricing = PRICING_TABLE.get_pricing(key)

    # Calculate input cost: (tokens / 1M) * cost_per_1m
    input_cost = (Decimal(tokens_in) / TOKENS_PER_MILLION) * pricing.input_cost_per_1m

    # Calculate output cost: (tokens / 1M) * cost_per_1m
    output_cost = (Decimal(tokens_out) / TOKENS_PER_MILLION) * pricing.output_cost_per_1m

    return float(input_cost + output_cost)
