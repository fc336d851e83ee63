"""
Factory for short code strategies, cached per strategy type.
"""

from enum import Enum

from shortlink_app.config import settings
from shortlink_app.services.short_code_strategies import (
    Base62ShortCodeStrategy,
    RandomShortCodeStrategy,
    ShortCodeStrategy,
)


class ShortCodeStrategyType(Enum):
    RANDOM = "random"
    BASE62 = "base62"


class ShortCodeFactory:

    _instances = {}

    @classmethod
    def create_strategy(cls, strategy_type: ShortCodeStrategyType = None) -> ShortCodeStrategy:
        """
        Return the (cached) strategy for strategy_type, defaulting to
        settings.short_code_strategy.
        """
        if strategy_type is None:
            strategy_type = ShortCodeStrategyType(settings.short_code_strategy)

        if strategy_type in cls._instances:
            return cls._instances[strategy_type]

        if strategy_type == ShortCodeStrategyType.RANDOM:
            instance = RandomShortCodeStrategy(
                length=settings.short_url_length,
                max_retries=settings.max_retries,
            )
        elif strategy_type == ShortCodeStrategyType.BASE62:
            instance = Base62ShortCodeStrategy(
                salt=settings.short_code_salt,
                max_length=settings.short_url_length,
            )
        else:
            raise ValueError(f"Unknown strategy type: {strategy_type}")

        cls._instances[strategy_type] = instance
        return instance
