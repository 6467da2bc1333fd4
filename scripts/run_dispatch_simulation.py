import csv
import os
import random
from datetime import date, datetime
from typing import List

import pandas as pd

from core.engine import DriverEngine
from dispatch.models import AcceptedOffer, TripRequest
from dispatch.acceptance import OfferBoard
from drivers.models import (
    AttendanceSnapshot,
    AttendanceStatus,
    DriverSnapshot,
    TripCategory,
    TripOutcome,
    TripOutcomeEvent,
)
from penalties.models import ComplaintsTrigger, PenaltyRule, PenaltySeverity
from routing.distance import HaversineDistanceProvider

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

CENTER_LAT = -17.824858
CENTER_LON = 31.053028


def load_drivers(filepath="mock_drivers.csv") -> List[DriverSnapshot]:
    drivers = []
    with open(os.path.join(BASE_DIR, filepath), "r") as file:
        reader = csv.DictReader(file)
        for row in reader:
            day = date.fromisoformat(row["day"])
            attendance = AttendanceSnapshot(
                driver_id=row["driver_id"],
                day=day,
                checked_in=row["checked_in"] == "True",
                status=AttendanceStatus(row["attendance_status"]),
                checked_in_at=datetime.fromisoformat(row["checked_in_at"]) if row["checked_in_at"] else None,
            )
            drivers.append(
                DriverSnapshot.new(
                    row["driver_id"],
                    row["status"],
                    row["car_types"].split("|"),
                    franchise_id=row["franchise_id"],
                    banned_globally=row["banned_globally"] == "True",
                    attendance=attendance,
                    location=(float(row["lat"]), float(row["lon"])),
                    active_trip_count=int(row["active_trip_count"]),
                )
            )
    return drivers


def replay_ledger(engine: DriverEngine, filepath="mock_trip_ledger.csv") -> int:
    ledger = pd.read_csv(os.path.join(BASE_DIR, filepath))
    for row in ledger.itertuples(index=False):
        timestamp = datetime.fromisoformat(row.timestamp)
        engine.record_trip_outcome(
            TripOutcomeEvent(
                driver_id=row.driver_id,
                outcome=TripOutcome(row.outcome),
                source_event_id=row.trip_id,
                fare_amount=float(row.fare_amount),
                timestamp=timestamp,
            )
        )
        if not pd.isna(row.rating):
            engine.record_rating(row.driver_id, row.trip_id, float(row.rating))
    return len(ledger)


def run_simulation(trip_count=20):
    print("=== STARTING DISPATCH RANKING SIMULATION ===")

    engine = DriverEngine(
        rules=[
            PenaltyRule(
                rule_id="THREE_COMPLAINTS",
                name="Three complaints",
                trigger=ComplaintsTrigger(complaint_count=3),
                amount=100.0,
                severity=PenaltySeverity.HIGH,
                is_automatic=True,
                block_driver=True,
                notify_admin=True,
            )
        ],
        distance_provider=HaversineDistanceProvider(),
    )

    drivers = load_drivers()
    replayed = replay_ledger(engine)
    print(f"Loaded {len(drivers)} drivers and replayed {replayed} trip outcomes.\n")

    day = drivers[0].attendance.day if drivers and drivers[0].attendance else date.today()
    board = OfferBoard()
    output_path = os.path.join(BASE_DIR, "dispatch_results.csv")

    with open(output_path, "w", newline="") as file:
        writer = csv.writer(file)
        writer.writerow(["trip_id", "category", "candidates", "winner", "distance_km", "score", "category_of_winner"])

        assigned = 0
        for i in range(trip_count):
            trip = TripRequest(
                trip_id=f"SIM-{i + 1:03d}",
                category=random.choice([TripCategory.NORMAL, TripCategory.NORMAL, TripCategory.PREMIUM]),
                day=day,
                pickup=(CENTER_LAT + random.uniform(-0.05, 0.05), CENTER_LON + random.uniform(-0.05, 0.05)),
            )
            ranked = engine.rank_candidates(trip, drivers)
            if not ranked:
                writer.writerow([trip.trip_id, trip.category.value, 0, "FAILED", "", "", ""])
                print(f"[FAILED] {trip.trip_id} ({trip.category.value}) -> no eligible drivers")
                continue

            # Offer to the top five; the first three of them accept.
            top = ranked[:5]
            board.open_offer(trip.trip_id, [c.driver_id for c in top])
            for candidate in top[:3]:
                rating = engine.get_performance(candidate.driver_id).rating
                board.accept(
                    trip.trip_id,
                    AcceptedOffer(driver_id=candidate.driver_id, distance_km=candidate.distance_km, rating=rating),
                )
            winner = board.resolve_winner(trip.trip_id)
            best = next(c for c in ranked if c.driver_id == winner.driver_id)
            assigned += 1

            writer.writerow([
                trip.trip_id,
                trip.category.value,
                len(ranked),
                winner.driver_id,
                best.distance_km,
                best.composite_score,
                best.performance_category.value,
            ])
            print(
                f"[SUCCESS] {trip.trip_id} ({trip.category.value}) -> {winner.driver_id} "
                f"({best.distance_km} km, {best.performance_category.value}, score {best.composite_score})"
            )

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Trips assigned: {assigned} / {trip_count}")
    print(f"Results written to '{output_path}'.")


if __name__ == "__main__":
    run_simulation()
