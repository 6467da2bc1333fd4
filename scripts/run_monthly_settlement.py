import os
from datetime import datetime

import pandas as pd

from core.engine import DriverEngine
from drivers.models import TripOutcome, TripOutcomeEvent
from earnings.models import EarningsConfig
from penalties.models import CancellationsTrigger, PenaltyRule

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Cancellation penalties replayed from the ledger before settling.
SETTLEMENT_RULES = (
    PenaltyRule(
        rule_id="REPEATED_CANCELLATIONS",
        name="Repeated cancellations",
        trigger=CancellationsTrigger(3),
        amount=25.0,
        is_automatic=True,
    ),
)


def monthly_earnings(ledger: pd.DataFrame) -> pd.DataFrame:
    """
    Gross earnings per driver per month from completed trips.
    """
    completed = ledger[ledger["outcome"] == "completed"].copy()
    completed["timestamp"] = pd.to_datetime(completed["timestamp"])
    completed["year"] = completed["timestamp"].dt.year
    completed["month"] = completed["timestamp"].dt.month
    return (
        completed.groupby(["driver_id", "year", "month"], as_index=False)
        .agg(gross_earnings=("fare_amount", "sum"), trips=("trip_id", "count"))
    )


def replay_penalties(engine: DriverEngine, ledger: pd.DataFrame) -> int:
    """
    Feed every trip outcome through the engine so cancellation penalties are on
    record for settle_month. Returns the number of penalties recorded.
    """
    recorded = 0
    for row in ledger.sort_values("timestamp").itertuples(index=False):
        result = engine.record_trip_outcome(
            TripOutcomeEvent(
                driver_id=row.driver_id,
                outcome=TripOutcome(row.outcome),
                source_event_id=row.trip_id,
                fare_amount=float(row.fare_amount),
                timestamp=datetime.fromisoformat(str(row.timestamp)),
            )
        )
        if result.penalties is not None:
            recorded += len(result.penalties.penalty_events)
    return recorded


def run_settlement(
    ledger_file="mock_trip_ledger.csv",
    output_file="monthly_settlements.csv",
    config_row=None,
    rules=SETTLEMENT_RULES,
    engine=None,
):
    print("=== MONTHLY SETTLEMENT ===")
    engine = engine or DriverEngine(rules=rules)
    if config_row:
        engine.configs.put(EarningsConfig.from_dict(config_row))

    ledger = pd.read_csv(os.path.join(BASE_DIR, ledger_file))
    penalties = replay_penalties(engine, ledger)
    print(f"Replayed {len(ledger)} trip outcomes, {penalties} penalties recorded.")
    totals = monthly_earnings(ledger)

    rows = []
    for row in totals.itertuples(index=False):
        settlement = engine.settle_month(row.driver_id, int(row.year), int(row.month), float(row.gross_earnings))
        rows.append({
            "driver_id": settlement.driver_id,
            "year": settlement.year,
            "month": settlement.month,
            "trips": row.trips,
            "gross_earnings": settlement.gross_earnings,
            "bonus": settlement.bonus,
            "cut_percent": settlement.cut_percent,
            "policy_cut": settlement.policy_cut,
            "total_penalties": settlement.total_penalties,
            "net_earnings": settlement.net_earnings,
        })

    df = pd.DataFrame(rows)
    output_path = os.path.join(BASE_DIR, output_file)
    df.to_csv(output_path, index=False)

    print(f"Settled {len(df)} driver-months.")
    if not df.empty:
        print(df[["gross_earnings", "bonus", "policy_cut", "total_penalties", "net_earnings"]].describe().round(2).to_string())
    print(f"Results written to '{output_path}'.")
    return df


if __name__ == "__main__":
    run_settlement()
