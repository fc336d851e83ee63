"""
Short code generation strategies.

Strategy Pattern: the URL service asks for a code for a freshly inserted
row id and does not care how it is made.
"""

import logging
import secrets
import string
from abc import ABC, abstractmethod

from sqlalchemy.orm import Session

from shortlink_app.models.url import URL

logger = logging.getLogger(__name__)

BASE62_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase


class ShortCodeGenerationError(Exception):
    """No usable short code could be produced"""


class ShortCodeStrategy(ABC):

    @abstractmethod
    def generate(self, url_id: int, db_session: Session) -> str:
        """
        Produce the short code for a URL row.

        Args:
            url_id: Database id of the row being created
            db_session: Session for strategies that check uniqueness
        """


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Random code, retried until unused.

    Unpredictable, at the cost of one lookup per attempt.
    """

    def __init__(self, length: int = 5, max_retries: int = 5):
        self.length = length
        self.max_retries = max_retries

    def generate(self, url_id: int, db_session: Session) -> str:
        for attempt in range(1, self.max_retries + 1):
            candidate = "".join(secrets.choice(BASE62_ALPHABET) for _ in range(self.length))
            taken = db_session.query(URL.id).filter(URL.short_code == candidate).first()
            if not taken:
                return candidate
            logger.info("Short code collision on attempt %s/%s", attempt, self.max_retries)

        raise ShortCodeGenerationError(
            f"Could not generate unique short code after {self.max_retries} attempts"
        )


class Base62ShortCodeStrategy(ShortCodeStrategy):
    """
    Base62 of (id + salt).

    Collision free and needs no lookups; the salt only hides small ids.
    """

    def __init__(self, salt: int = 1000, max_length: int = 5):
        self.salt = salt
        self.max_length = max_length

    def generate(self, url_id: int, db_session: Session) -> str:
        code = base62_encode(url_id + self.salt)
        # Truncating would create duplicates, so refuse instead
        if len(code) > self.max_length:
            raise ShortCodeGenerationError(
                f"Short code '{code}' for URL {url_id} exceeds max length {self.max_length}"
            )
        return code


def base62_encode(number: int) -> str:
    if number < 0:
        raise ValueError("base62_encode needs a non-negative number")
    if number == 0:
        return BASE62_ALPHABET[0]

    digits = []
    while number:
        number, remainder = divmod(number, 62)
        digits.append(BASE62_ALPHABET[remainder])
    return "".join(reversed(digits))
