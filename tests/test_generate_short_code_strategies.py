"""
Tests for short code generation strategies.
"""
import pytest

from shortlink_app.models.url import URL
from shortlink_app.services.short_code_factory import (
    ShortCodeFactory,
    ShortCodeStrategyType
)
from shortlink_app.services.short_code_strategies import (
    BASE62_ALPHABET,
    Base62ShortCodeStrategy,
    RandomShortCodeStrategy,
    ShortCodeGenerationError,
    base62_encode,
)


class TestBase62Strategy:
    """Test Base62 encoding strategy"""

    def test_generates_correct_length(self, db_session):
        strategy = Base62ShortCodeStrategy(salt=1000, max_length=5)

        code = strategy.generate(url_id=1, db_session=db_session)

        assert len(code) <= 5
        assert code.isalnum()

    def test_same_id_same_code(self, db_session):
        """Same ID generates same code (deterministic)"""
        strategy = Base62ShortCodeStrategy(salt=1000, max_length=5)

        code1 = strategy.generate(url_id=123, db_session=db_session)
        code2 = strategy.generate(url_id=123, db_session=db_session)

        assert code1 == code2

    def test_early_ids_unique(self, db_session):
        strategy = Base62ShortCodeStrategy(salt=1256, max_length=5)

        codes = {strategy.generate(url_id, db_session) for url_id in range(1, 101)}

        assert len(codes) == 100

    def test_obfuscation_with_salt(self, db_session):
        strategy_no_salt = Base62ShortCodeStrategy(salt=0, max_length=5)
        strategy_with_salt = Base62ShortCodeStrategy(salt=1000, max_length=5)

        assert strategy_no_salt.generate(1, db_session) != strategy_with_salt.generate(1, db_session)

    def test_capacity_exceeded(self, db_session):
        """62^5 codes fit in five characters; one more does not"""
        strategy = Base62ShortCodeStrategy(salt=0, max_length=5)

        assert len(strategy.generate(62 ** 5 - 1, db_session)) == 5
        with pytest.raises(ShortCodeGenerationError):
            strategy.generate(62 ** 5, db_session)


class TestBase62Encode:

    def test_small_numbers(self):
        assert base62_encode(0) == "0"
        assert base62_encode(61) == "Z"
        assert base62_encode(62) == "10"

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            base62_encode(-1)


class TestRandomStrategy:

    def test_generates_alphabet_code(self, db_session):
        strategy = RandomShortCodeStrategy(length=7, max_retries=3)

        code = strategy.generate(url_id=1, db_session=db_session)

        assert len(code) == 7
        assert set(code) <= set(BASE62_ALPHABET)

    def test_gives_up_after_collisions(self, db_session, monkeypatch):
        db_session.add(URL(long_url="https://example.com/", short_code="aaaaa"))
        db_session.commit()
        monkeypatch.setattr(
            "shortlink_app.services.short_code_strategies.secrets.choice",
            lambda alphabet: "a",
        )
        strategy = RandomShortCodeStrategy(length=5, max_retries=3)

        with pytest.raises(ShortCodeGenerationError):
            strategy.generate(url_id=2, db_session=db_session)


class TestShortCodeFactory:
    """Test strategy factory"""

    def test_creates_random_strategy(self):
        strategy = ShortCodeFactory.create_strategy(ShortCodeStrategyType.RANDOM)
        assert isinstance(strategy, RandomShortCodeStrategy)

    def test_creates_base62_strategy(self):
        strategy = ShortCodeFactory.create_strategy(ShortCodeStrategyType.BASE62)
        assert isinstance(strategy, Base62ShortCodeStrategy)

    def test_instances_are_cached(self):
        first = ShortCodeFactory.create_strategy(ShortCodeStrategyType.BASE62)
        assert ShortCodeFactory.create_strategy(ShortCodeStrategyType.BASE62) is first

    def test_creates_default_from_settings(self):
        assert ShortCodeFactory.create_strategy() is not None
