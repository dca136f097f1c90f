"""
Static market catalog.

Company definitions, sector trend ranges, scripted news and the
real-world ticker mapping used by the external fetcher. Nothing here
changes during a session; ``build_market_state`` turns it into live state.
"""

from __future__ import annotations

import random
from typing import Optional

from .models import (
    Company,
    CompanyAction,
    CompanyNews,
    CompositeIndex,
    DividendEvent,
    EarningsEvent,
    MarketNewsEvent,
    MarketState,
    NowAverage,
    Sector,
)

QUARTER_MONTHS = [1, 4, 7, 10]

MARKET_SENTIMENT = {"min": -0.004, "max": 0.004}

SECTOR_TRENDS: dict[Sector, dict[str, float]] = {
    Sector.TECHNOLOGY: {"min": -0.006, "max": 0.007},
    Sector.FINANCE: {"min": -0.004, "max": 0.004},
    Sector.ENERGY: {"min": -0.006, "max": 0.005},
    Sector.HEALTHCARE: {"min": -0.003, "max": 0.004},
    Sector.CONSUMER: {"min": -0.003, "max": 0.003},
    Sector.INDUSTRIAL: {"min": -0.004, "max": 0.004},
}


COMPANY_DEFINITIONS: list[dict] = [
    {
        "id": "NOVA", "name": "Nova Computing", "sector": Sector.TECHNOLOGY,
        "base_price": 182.40, "total_shares": 5_000_000, "volatility": 0.018, "beta": 1.3,
        "pe_ratio": 32.0,
        "earnings": {"day": 15, "months": QUARTER_MONTHS},
        "news": [
            {"headline": "Nova Computing unveils next-gen chip", "impact": 0.05, "probability": 0.6},
            {"headline": "Nova Computing faces antitrust probe", "impact": -0.06, "probability": 0.4},
        ],
    },
    {
        "id": "BYTE", "name": "Bytestream Media", "sector": Sector.TECHNOLOGY,
        "base_price": 64.15, "total_shares": 3_000_000, "volatility": 0.022, "beta": 1.5,
        "pe_ratio": 45.0,
        "earnings": {"day": 20, "months": QUARTER_MONTHS},
        "news": [
            {"headline": "Bytestream subscriber growth tops forecasts", "impact": 0.04, "probability": 0.5},
            {"headline": "Bytestream hit by data breach", "impact": -0.07, "probability": 0.3},
        ],
    },
    {
        "id": "QBIT", "name": "Qubit Dynamics", "sector": Sector.TECHNOLOGY,
        "base_price": 27.80, "total_shares": 1_000_000, "volatility": 0.03, "beta": 1.8,
        "news": [
            {"headline": "Qubit Dynamics lands government contract", "impact": 0.08, "probability": 0.4},
        ],
    },
    {
        "id": "CRWN", "name": "Crown Bancorp", "sector": Sector.FINANCE,
        "base_price": 98.60, "total_shares": 4_000_000, "volatility": 0.01, "beta": 1.0,
        "pe_ratio": 12.0,
        "earnings": {"day": 12, "months": QUARTER_MONTHS},
        "dividend": {"day": 25, "months": [3, 6, 9, 12], "amount": 0.62},
        "news": [
            {"headline": "Crown Bancorp raises loan-loss reserves", "impact": -0.03, "probability": 0.5},
        ],
    },
    {
        "id": "LEDG", "name": "Ledgerline Payments", "sector": Sector.FINANCE,
        "base_price": 143.25, "total_shares": 2_500_000, "volatility": 0.014, "beta": 1.1,
        "pe_ratio": 28.0,
        "earnings": {"day": 18, "months": QUARTER_MONTHS},
    },
    {
        "id": "PTRX", "name": "Petrax Energy", "sector": Sector.ENERGY,
        "base_price": 71.90, "total_shares": 3_500_000, "volatility": 0.02, "beta": 1.2,
        "pe_ratio": 9.0,
        "dividend": {"day": 10, "months": [2, 5, 8, 11], "amount": 0.85},
        "news": [
            {"headline": "Petrax strikes major offshore field", "impact": 0.06, "probability": 0.5},
            {"headline": "Petrax refinery fire halts output", "impact": -0.05, "probability": 0.4},
        ],
    },
    {
        "id": "SOLR", "name": "Solaris Renewables", "sector": Sector.ENERGY,
        "base_price": 38.45, "total_shares": 1_800_000, "volatility": 0.025, "beta": 1.4,
        "earnings": {"day": 22, "months": QUARTER_MONTHS},
    },
    {
        "id": "VITA", "name": "Vitacore Pharma", "sector": Sector.HEALTHCARE,
        "base_price": 121.30, "total_shares": 2_800_000, "volatility": 0.016, "beta": 0.9,
        "pe_ratio": 22.0,
        "earnings": {"day": 8, "months": QUARTER_MONTHS},
        "dividend": {"day": 28, "months": [3, 6, 9, 12], "amount": 0.48},
        "news": [
            {"headline": "Vitacore drug wins regulatory approval", "impact": 0.09, "probability": 0.3},
            {"headline": "Vitacore trial misses primary endpoint", "impact": -0.08, "probability": 0.3},
        ],
    },
    {
        "id": "MEDX", "name": "MedExpress Labs", "sector": Sector.HEALTHCARE,
        "base_price": 55.70, "total_shares": 1_200_000, "volatility": 0.019, "beta": 1.0,
    },
    {
        "id": "BRGR", "name": "Burger Baron", "sector": Sector.CONSUMER,
        "base_price": 46.20, "total_shares": 2_200_000, "volatility": 0.012, "beta": 0.8,
        "pe_ratio": 18.0,
        "dividend": {"day": 15, "months": [1, 4, 7, 10], "amount": 0.35},
        "news": [
            {"headline": "Burger Baron launches plant-based menu", "impact": 0.03, "probability": 0.6},
        ],
    },
    {
        "id": "LUXE", "name": "Luxe Apparel", "sector": Sector.CONSUMER,
        "base_price": 88.10, "total_shares": 1_500_000, "volatility": 0.015, "beta": 1.1,
        "earnings": {"day": 26, "months": QUARTER_MONTHS},
    },
    {
        "id": "IRON", "name": "Ironworks Heavy Industries", "sector": Sector.INDUSTRIAL,
        "base_price": 112.75, "total_shares": 3_200_000, "volatility": 0.013, "beta": 1.0,
        "pe_ratio": 15.0,
        "earnings": {"day": 5, "months": QUARTER_MONTHS},
        "dividend": {"day": 20, "months": [2, 5, 8, 11], "amount": 0.55},
    },
    {
        "id": "AERO", "name": "Aerodyne Logistics", "sector": Sector.INDUSTRIAL,
        "base_price": 59.35, "total_shares": 1_600_000, "volatility": 0.017, "beta": 1.2,
        "news": [
            {"headline": "Aerodyne wins fleet expansion deal", "impact": 0.04, "probability": 0.5},
        ],
    },
]


INDEX_DEFINITIONS: list[dict] = [
    {
        "id": "TYC", "name": "Tycoon Composite", "base_value": 1000.0,
        "companies": [c["id"] for c in COMPANY_DEFINITIONS],
    },
    {
        "id": "TTI", "name": "Tycoon Tech Index", "base_value": 500.0,
        "companies": ["NOVA", "BYTE", "QBIT"],
    },
    {
        "id": "TBC", "name": "Tycoon Blue Chips", "base_value": 750.0,
        "companies": ["NOVA", "CRWN", "LEDG", "VITA", "IRON"],
    },
]


MARKET_NEWS_EVENTS: list[MarketNewsEvent] = [
    MarketNewsEvent(
        headline="Central bank cuts interest rates",
        sectors=[Sector.FINANCE, Sector.CONSUMER, Sector.INDUSTRIAL], impact="positive", magnitude=0.02,
    ),
    MarketNewsEvent(
        headline="Central bank signals rate hikes ahead",
        sectors=[Sector.FINANCE, Sector.TECHNOLOGY], impact="negative", magnitude=0.02,
    ),
    MarketNewsEvent(
        headline="Oil prices spike on supply concerns",
        sectors=[Sector.ENERGY, Sector.INDUSTRIAL], impact="mixed", magnitude=0.03,
    ),
    MarketNewsEvent(
        headline="Tech sector rallies on AI breakthroughs",
        sectors=[Sector.TECHNOLOGY], impact="positive", magnitude=0.025,
    ),
    MarketNewsEvent(
        headline="New healthcare regulations announced",
        sectors=[Sector.HEALTHCARE], impact="mixed", magnitude=0.02,
    ),
    MarketNewsEvent(
        headline="Consumer spending slows sharply",
        sectors=[Sector.CONSUMER], impact="negative", magnitude=0.015,
    ),
    MarketNewsEvent(
        headline="Infrastructure bill passes congress",
        sectors=[Sector.INDUSTRIAL, Sector.ENERGY], impact="positive", magnitude=0.02,
    ),
]


COMPANY_ACTIONS: list[CompanyAction] = [
    CompanyAction(action="announces share buyback", description="The board approved a large share repurchase program.", impact=0.04),
    CompanyAction(action="cuts workforce by 10%", description="Management restructured operations to reduce costs.", impact=0.02),
    CompanyAction(action="launches new product line", description="A new flagship product hits the market.", impact=0.05),
    CompanyAction(action="acquires a competitor", description="The acquisition is expected to dilute earnings short term.", impact=-0.03),
    CompanyAction(action="increases dividend", description="Shareholders will receive a higher payout next quarter.", impact=0.03),
    CompanyAction(action="replaces its CEO", description="Investors are uncertain about the new leadership.", impact=-0.02),
]


REAL_WORLD_TICKERS: dict[str, str] = {
    "NOVA": "AAPL",
    "BYTE": "NFLX",
    "QBIT": "IBM",
    "CRWN": "JPM",
    "LEDG": "V",
    "PTRX": "XOM",
    "SOLR": "ENPH",
    "VITA": "PFE",
    "MEDX": "ABT",
    "BRGR": "MCD",
    "LUXE": "NKE",
    "IRON": "CAT",
    "AERO": "UPS",
}

SECTOR_TICKERS: dict[Sector, str] = {
    Sector.TECHNOLOGY: "MSFT",
    Sector.FINANCE: "BAC",
    Sector.ENERGY: "CVX",
    Sector.HEALTHCARE: "JNJ",
    Sector.CONSUMER: "PG",
    Sector.INDUSTRIAL: "GE",
}


def get_real_world_ticker(company_id: str, sector: Optional[Sector] = None) -> str:
    """Map a game ticker to a real listing, falling back to a sector proxy."""
    if company_id in REAL_WORLD_TICKERS:
        return REAL_WORLD_TICKERS[company_id]
    if sector is not None and sector in SECTOR_TICKERS:
        return SECTOR_TICKERS[sector]
    return "SPY"


def get_market_status_message(change: float) -> str:
    """Describe a NOW Average percent change in words."""
    if change > 2:
        return "Strong Rally: Buyers dominate across the board"
    if change > 0.5:
        return "Market Up: Broad gains lift the NOW Average"
    if change > 0.1:
        return "Slight Gains: Cautious optimism on the floor"
    if change >= -0.1:
        return "Flat Trading: Investors wait for direction"
    if change >= -0.5:
        return "Slight Losses: Mild profit-taking"
    if change >= -2:
        return "Market Down: Sellers in control"
    return "Sharp Selloff: Panic selling grips the market"


def build_company(definition: dict, rng: random.Random, history_length: int = 50) -> Company:
    """Create a live company with a randomised ±5% starting history."""
    base = definition["base_price"]
    history = [base * (1 + rng.uniform(-0.05, 0.05)) for _ in range(history_length)]
    company = Company(
        id=definition["id"],
        name=definition["name"],
        sector=definition["sector"],
        total_shares=definition["total_shares"],
        base_price=base,
        volatility=definition["volatility"],
        beta=definition.get("beta", 1.0),
        pe_ratio=definition.get("pe_ratio"),
        earnings=EarningsEvent(**definition["earnings"]) if definition.get("earnings") else None,
        dividend=DividendEvent(**definition["dividend"]) if definition.get("dividend") else None,
        news=[CompanyNews(**n) for n in definition.get("news", [])],
        current_price=base,
        previous_price=base,
        price_history=history,
        volume=rng.randint(0, 10_000_000),
        day_high=base * 1.01,
        day_low=base * 0.99,
        week_high=base * 1.05,
        week_low=base * 0.95,
        last_recorded_price=base,
    )
    assert company.total_shares > 0
    return company


def build_index(definition: dict, rng: random.Random, history_length: int = 50) -> CompositeIndex:
    base = definition["base_value"]
    return CompositeIndex(
        id=definition["id"],
        name=definition["name"],
        companies=list(definition["companies"]),
        base_value=base,
        current_value=base,
        previous_value=base,
        value_history=[base * (1 + rng.uniform(-0.04, 0.04)) for _ in range(history_length)],
    )


def build_market_state(
    rng: Optional[random.Random] = None,
    history_length: int = 50,
    companies: Optional[list[dict]] = None,
    indices: Optional[list[dict]] = None,
) -> MarketState:
    """Build the initial session state from the static definitions."""
    rng = rng or random.Random()
    company_defs = companies if companies is not None else COMPANY_DEFINITIONS
    index_defs = indices if indices is not None else INDEX_DEFINITIONS

    built = [build_company(d, rng, history_length) for d in company_defs]
    known = {c.id for c in built}
    state = MarketState(
        companies={c.id: c for c in built},
        indices=[
            build_index(d, rng, history_length)
            for d in index_defs
            if all(cid in known for cid in d["companies"])
        ],
    )
    weighted = now_average_value(state.companies.values())
    state.now_average = NowAverage(
        current_value=weighted,
        previous_value=weighted,
        value_history=[weighted],
        description=get_market_status_message(0.0),
    )
    return state


def now_average_value(companies, scale: float = 100.0) -> float:
    """Market-cap-weighted mean of current prices, times ``scale``."""
    companies = list(companies)
    total_cap = sum(c.current_price * c.total_shares for c in companies)
    if total_cap <= 0:
        return 0.0
    weighted = sum(c.current_price * (c.current_price * c.total_shares) for c in companies)
    return weighted / total_cap * scale
