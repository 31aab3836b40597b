"""Credit packages sold through top-ups."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CreditPackage:
    id: str
    name: str
    credits: int
    amount: int  # IDR


# 1:1 ratio, credits equal the rupiah amount
CREDIT_PACKAGES = {
    "starter": CreditPackage(id="starter", name="Starter", credits=10000, amount=10000),
    "basic": CreditPackage(id="basic", name="Basic", credits=25000, amount=25000),
    "pro": CreditPackage(id="pro", name="Pro", credits=50000, amount=50000),
    "premium": CreditPackage(id="premium", name="Premium", credits=100000, amount=100000),
}


def get_package(package_id: str | None) -> CreditPackage | None:
    """Look up a package by ID; None for missing or unknown IDs."""
    if not package_id:
        return None
    return CREDIT_PACKAGES.get(package_id)


def list_packages() -> list[CreditPackage]:
    """All packages, cheapest first."""
    return sorted(CREDIT_PACKAGES.values(), key=lambda p: p.amount)
