from typing import Callable, Mapping

import structlog

from tokentally.models import PricingRate, UsageCounts

logger = structlog.get_logger()

# receives the usage and the model string, returns a cost in USD
PricingFunction = Callable[[UsageCounts, str], float]

# official Anthropic API pricing, USD per million tokens
OPUS_4 = PricingRate(input=15.00, output=75.00, cache_write=18.75, cache_read=1.50)
SONNET_4 = PricingRate(input=3.00, output=15.00, cache_write=3.75, cache_read=0.30)
HAIKU_3_5 = PricingRate(input=0.80, output=4.00, cache_write=1.00, cache_read=0.08)

# checked in order, first substring match wins
BUILTIN_RATES: "tuple[tuple[tuple[str, ...], PricingRate], ...]" = (
    (("opus-4", "claude-opus-4"), OPUS_4),
    (("sonnet-4", "claude-sonnet-4"), SONNET_4),
    (("haiku-3.5", "claude-haiku-3.5"), HAIKU_3_5),
)

SUPPORTED_MODELS: "tuple[str, ...]" = tuple(
    pattern for patterns, _ in BUILTIN_RATES for pattern in patterns
)


def builtin_rate(model: "str") -> "PricingRate | None":
    lowered = model.lower()
    for patterns, rate in BUILTIN_RATES:
        if any(p in lowered for p in patterns):
            return rate
    return None


class PricingEngine:
    """
    PricingEngine maps a model and its token usage to a cost.

    Lookup order, first match wins:
     - a pricing function registered for the exact model string
     - a custom PricingRate registered for the exact model string
     - the built-in rate table, matched by case-insensitive substring
     - otherwise 0.0, unknown models are never estimated

    Overrides live on the instance. Callers that share overrides
    across an application should share one engine, and must lock
    around registration if it races with cost lookups.
    """

    def __init__(self) -> "None":
        self._pricing_functions: "dict[str, PricingFunction]" = {}
        self._custom_pricing: "dict[str, PricingRate]" = {}

    def set_pricing_function(self, model: "str", fn: "PricingFunction") -> "None":
        self._pricing_functions[model] = fn

    def get_pricing_function(self, model: "str") -> "PricingFunction | None":
        return self._pricing_functions.get(model)

    def remove_pricing_function(self, model: "str") -> "None":
        self._pricing_functions.pop(model, None)

    def has_pricing_function(self, model: "str") -> "bool":
        return model in self._pricing_functions

    def clear_pricing_functions(self) -> "None":
        self._pricing_functions.clear()

    def pricing_functions(self) -> "dict[str, PricingFunction]":
        return dict(self._pricing_functions)

    def set_custom_pricing(self, model: "str", rate: "PricingRate") -> "None":
        self._custom_pricing[model] = rate

    def get_custom_pricing(self, model: "str") -> "PricingRate | None":
        return self._custom_pricing.get(model)

    def remove_custom_pricing(self, model: "str") -> "None":
        self._custom_pricing.pop(model, None)

    def has_custom_pricing(self, model: "str") -> "bool":
        return model in self._custom_pricing

    def clear_custom_pricing(self) -> "None":
        self._custom_pricing.clear()

    def custom_pricing(self) -> "dict[str, PricingRate]":
        return dict(self._custom_pricing)

    def cost(self, model: "str", usage: "UsageCounts") -> "float":
        fn = self._pricing_functions.get(model)
        if fn is not None:
            return fn(usage, model)

        rate = self._custom_pricing.get(model)
        if rate is not None:
            return rate.cost(usage)

        rate = builtin_rate(model)
        if rate is None:
            return 0.0
        return rate.cost(usage)

    @staticmethod
    def total_tokens(usage: "UsageCounts") -> "int":
        return usage.total_tokens

    @staticmethod
    def supported_models() -> "list[str]":
        return list(SUPPORTED_MODELS)

    @staticmethod
    def is_model_supported(model: "str") -> "bool":
        lowered = model.lower()
        return any(pattern in lowered for pattern in SUPPORTED_MODELS)

    def pricing_info(self, model: "str") -> "PricingRate | None":
        """
        returns the per-million rates used for model, checking
        custom pricing first. None for unsupported models.
        """
        rate = self._custom_pricing.get(model)
        if rate is not None:
            return rate

        if not self.is_model_supported(model):
            return None
        return builtin_rate(model)


def claude4_pricing() -> "PricingFunction":
    """
    returns a pricing function applying the built-in Claude 4
    table, for registering against custom model aliases.
    """

    def _price(usage: "UsageCounts", model: "str") -> "float":
        rate = builtin_rate(model)
        if rate is None:
            return 0.0
        return rate.cost(usage)

    return _price


def model_specific_pricing(
    rules: "Mapping[str, PricingRate]",
    default_price: "float" = 0.0,
) -> "PricingFunction":
    """
    returns a pricing function that applies the first rule whose
    pattern appears in the model name (case-insensitive, in rule
    order). Models matching no rule are charged default_price per
    million tokens across all categories.
    """
    ordered = [(pattern.lower(), rate) for pattern, rate in rules.items()]

    def _price(usage: "UsageCounts", model: "str") -> "float":
        lowered = model.lower()
        for pattern, rate in ordered:
            if pattern in lowered:
                return rate.cost(usage)

        logger.debug("pricing_rule_fallback", model=model, default_price=default_price)
        return usage.total_tokens * default_price / 1_000_000.0

    return _price
