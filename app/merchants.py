"""
Merchant directory — static deposit details and supported networks.

Treated as external configuration: the order message builder resolves
deposit addresses and network labels from here.
"""

from dataclasses import dataclass, field


class UnknownMerchantError(Exception):
    """Raised when a merchant id is not in the directory."""
    pass


class UnknownNetworkError(Exception):
    """Raised when a network name does not match any merchant network."""
    pass


@dataclass(frozen=True)
class NetworkOption:
    name: str
    arrival_time: str
    confirmations: str
    min_deposit: str
    notes: str


@dataclass(frozen=True)
class Merchant:
    id: str
    name: str
    verified: bool
    deposit_address: str
    networks: list[NetworkOption] = field(default_factory=list)


MERCHANTS: dict[str, Merchant] = {
    "m0": Merchant(
        id="m0",
        name="Wekewa Official",
        verified=True,
        deposit_address="0x5e7ef40b29147e856a3615bbef78140f5d19844e",
        networks=[
            NetworkOption(
                name="OPTIMISM (Optimism Network)",
                arrival_time="~1 minute",
                confirmations="1 bundle",
                min_deposit=">0.0003 WLD",
                notes="Fastest and low-cost. Recommended for most deposits.",
            ),
            NetworkOption(
                name="ETH (Ethereum ERC-20)",
                arrival_time="~2 minutes",
                confirmations="6 Ethereum block confirmations",
                min_deposit=">0.0003 WLD",
                notes="Very secure but higher gas fees.",
            ),
            NetworkOption(
                name="WLD (World Chain)",
                arrival_time="~7 minutes",
                confirmations="1 bundle",
                min_deposit=">0.00000001 WLD",
                notes="Lowest minimum deposit, cheapest fees, but slower.",
            ),
        ],
    ),
}

SUPPORTED_BANKS = [
    "Family Bank Ltd",
    "Bank of Africa (BOA)",
    "Faulu DTM",
    "Kingdom Bank",
    "Imperial Bank Ltd",
    "Musoni",
    "KWFT DTM",
    "Rafiki DTM",
    "Branch Microfinance Bank",
    "Uwezo DTM",
    "Credit Bank",
    "Citibank N.A Kenya",
    "Vision Fund Kenya",
    "NCBA",
    "Diamond Trust Bank (DTB)",
    "GTBank Kenya Ltd",
    "SBM Bank",
    "Equity Bank",
    "ABC Bank",
    "Stanbic Bank",
    "Housing Finance Company Ltd",
    "Consolidated Bank Ltd",
    "Caritas MFB",
    "Premier Bank",
    "Ecobank",
    "Sidian Bank",
    "Co-operative Bank",
    "Standard Chartered Bank",
    "ABSA",
    "Spire Bank",
    "SMEP DTM",
    "KCB",
    "Century Microfinance",
    "I&M Bank Limited",
    "Access Bank Kenya",
    "Gulf African Bank",
    "National Bank",
    "Prime Bank",
    "UBA Bank",
    "Post Office Savings Bank",
]


def get_merchant(merchant_id: str) -> Merchant:
    merchant = MERCHANTS.get(merchant_id)
    if merchant is None:
        raise UnknownMerchantError(f"Unknown merchant: {merchant_id}")
    return merchant


def resolve_network(merchant: Merchant, name: str) -> NetworkOption:
    """Match *name* case-insensitively against the start of a network label."""
    wanted = name.strip().lower()
    if wanted:
        for network in merchant.networks:
            if network.name.lower().startswith(wanted):
                return network
    raise UnknownNetworkError(
        f"Network {name!r} is not supported by {merchant.name}"
    )


def is_supported_bank(bank_name: str) -> bool:
    wanted = bank_name.strip().lower()
    return any(bank.lower() == wanted for bank in SUPPORTED_BANKS)
