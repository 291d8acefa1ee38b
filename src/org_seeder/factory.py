"""
EntityFactory - Randomized Company/Branch/Department/Employee drafts.

Faker strings are pre-generated into pools at construction and sampled
with a seeded NumPy generator, so millions of entities cost O(1) each and
two factories built with the same seed produce identical streams without
touching process-wide random state.

Usage:
    factory = EntityFactory(seed=42)
    company = factory.create("Company")
    employee = factory.create("Employee", owner_id=department_id)
"""

from __future__ import annotations

import re
from datetime import date, timedelta
from typing import TYPE_CHECKING, Callable

import numpy as np
from faker import Faker

from .errors import ConfigError
from .models import BRANCH, COMPANY, DEPARTMENT, EMPLOYEE, Identifier, Record

if TYPE_CHECKING:
    from numpy.random import Generator

# Default pool sizes - large enough that repeats stay uncommon at scale
DEFAULT_POOL_SIZES = {
    "companies": 5_000,
    "industries": 2_000,
    "cities": 1_000,
    "countries": 500,
    "first_names": 3_000,
    "last_names": 3_000,
}

DEPARTMENT_NAMES = (
    "HR",
    "Finance",
    "Engineering",
    "Marketing",
    "Sales",
    "Operations",
    "IT",
    "Legal",
)

POSITIONS = (
    "Manager",
    "Senior Developer",
    "Developer",
    "Analyst",
    "Associate",
    "Director",
    "Coordinator",
)

# Field ranges (inclusive)
FOUNDED_YEAR_RANGE = (1900, 2023)
REVENUE_RANGE = (1_000_000, 1_000_000_000)
BRANCH_AGE_DAYS = 20 * 365
BUDGET_RANGE = (100_000, 5_000_000)
HEAD_COUNT_RANGE = (10, 200)
SALARY_RANGE = (30_000, 200_000)
TENURE_DAYS = 5 * 365

EMAIL_DOMAIN = "company.com"
EMAIL_TOKEN_LENGTH = 6
_TOKEN_ALPHABET = np.array(list("abcdefghijklmnopqrstuvwxyz0123456789"))
_NON_ALNUM = re.compile(r"[^a-z0-9]")


class EntityFactory:
    """
    Synthesizes one entity draft at a time.

    Drafts are plain dicts with no identifier and no parent field; the
    relationship binder adds the parent reference when the run needs one.

    Attributes:
        seed: Seed for Faker pools and NumPy sampling (None = fresh entropy)
        today: Reference date for past-date fields
        unique_emails: Re-draw the email token when an address repeats
    """

    def __init__(
        self,
        seed: int | None = None,
        pool_sizes: dict[str, int] | None = None,
        today: date | None = None,
        unique_emails: bool = False,
    ) -> None:
        """
        Initialize the factory and pre-generate its string pools.

        Args:
            seed: Random seed for reproducibility
            pool_sizes: Optional dict overriding DEFAULT_POOL_SIZES
            today: Reference date (defaults to date.today())
            unique_emails: Track issued emails and guarantee uniqueness
        """
        self.seed = seed
        self.today = today or date.today()
        self.unique_emails = unique_emails
        self._rng: Generator = np.random.default_rng(seed)
        self._issued_emails: set[str] = set()

        sizes = {**DEFAULT_POOL_SIZES, **(pool_sizes or {})}

        self._faker = Faker()
        if seed is not None:
            self._faker.seed_instance(seed)

        self.companies = self._generate_pool(self._faker.company, sizes["companies"])
        self.industries = self._generate_pool(self._faker.catch_phrase, sizes["industries"])
        self.cities = self._generate_pool(self._faker.city, sizes["cities"])
        self.countries = self._generate_pool(self._faker.country, sizes["countries"])
        self.first_names = self._generate_pool(self._faker.first_name, sizes["first_names"])
        self.last_names = self._generate_pool(self._faker.last_name, sizes["last_names"])

        self._builders: dict[str, Callable[[int, Identifier | None], Record]] = {
            COMPANY: self._company,
            BRANCH: self._branch,
            DEPARTMENT: self._department,
            EMPLOYEE: self._employee,
        }

    @staticmethod
    def _generate_pool(generator: Callable[[], str], size: int) -> list[str]:
        if size < 1:
            raise ConfigError(f"Pool size must be >= 1, got {size}")
        return [generator() for _ in range(size)]

    # =========================================================================
    # Public API
    # =========================================================================

    def create(
        self,
        kind: str,
        index: int = 0,
        owner_id: Identifier | None = None,
    ) -> Record:
        """
        Create one entity draft.

        Args:
            kind: One of Company, Branch, Department, Employee
            index: Ordinal of the entity under its parent (cycles department names)
            owner_id: Parent identifier, used only to derive the employee email

        Returns:
            Dict of field values, no id and no parent field

        Raises:
            ConfigError: If kind is unknown
        """
        try:
            builder = self._builders[kind]
        except KeyError:
            raise ConfigError(f"Unknown entity kind: {kind}") from None
        return builder(index, owner_id)

    @property
    def issued_email_count(self) -> int:
        """Number of emails tracked for uniqueness (0 unless unique_emails)."""
        return len(self._issued_emails)

    # =========================================================================
    # Sampling helpers
    # =========================================================================

    def _pick(self, pool: list[str]) -> str:
        return pool[int(self._rng.integers(len(pool)))]

    def _int(self, bounds: tuple[int, int]) -> int:
        return int(self._rng.integers(bounds[0], bounds[1], endpoint=True))

    def _money(self, bounds: tuple[int, int]) -> float:
        return round(float(self._rng.uniform(bounds[0], bounds[1])), 2)

    def _past_date(self, max_days: int) -> date:
        return self.today - timedelta(days=int(self._rng.integers(1, max_days, endpoint=True)))

    def _token(self) -> str:
        return "".join(self._rng.choice(_TOKEN_ALPHABET, size=EMAIL_TOKEN_LENGTH))

    # =========================================================================
    # Builders
    # =========================================================================

    def _company(self, index: int, owner_id: Identifier | None) -> Record:
        return {
            "name": self._pick(self.companies),
            "industry": self._pick(self.industries),
            "founded_year": self._int(FOUNDED_YEAR_RANGE),
            "revenue": self._money(REVENUE_RANGE),
        }

    def _branch(self, index: int, owner_id: Identifier | None) -> Record:
        return {
            "name": f"{self._pick(self.cities)} Branch",
            "location": self._pick(self.countries),
            "established": self._past_date(BRANCH_AGE_DAYS),
        }

    def _department(self, index: int, owner_id: Identifier | None) -> Record:
        return {
            "name": DEPARTMENT_NAMES[index % len(DEPARTMENT_NAMES)],
            "budget": self._money(BUDGET_RANGE),
            "head_count": self._int(HEAD_COUNT_RANGE),
        }

    def _employee(self, index: int, owner_id: Identifier | None) -> Record:
        first_name = self._pick(self.first_names)
        last_name = self._pick(self.last_names)
        return {
            "first_name": first_name,
            "last_name": last_name,
            "email": self._email(first_name, last_name, owner_id),
            "position": POSITIONS[int(self._rng.integers(len(POSITIONS)))],
            "salary": self._money(SALARY_RANGE),
            "join_date": self._past_date(TENURE_DAYS),
        }

    def _email(self, first_name: str, last_name: str, owner_id: Identifier | None) -> str:
        """
        Build ``first.last.<owner fragment>.<token>@company.com``.

        Uniqueness is approximate unless unique_emails is set: the owner
        fragment plus a 6-character token make collisions rare, not impossible.
        """
        parts = [_slug(first_name), _slug(last_name)]
        if owner_id is not None:
            parts.append(_slug(str(owner_id))[-4:])
        prefix = ".".join(p for p in parts if p)

        email = f"{prefix}.{self._token()}@{EMAIL_DOMAIN}"
        if self.unique_emails:
            while email in self._issued_emails:
                email = f"{prefix}.{self._token()}@{EMAIL_DOMAIN}"
            self._issued_emails.add(email)
        return email


def _slug(value: str) -> str:
    return _NON_ALNUM.sub("", value.lower())
