import uuid
from datetime import datetime, timedelta

import numpy as np
import pandas as pd

# Center around Harare, where the sample fleet operates
CENTER_LAT = -17.824858
CENTER_LON = 31.053028

CAR_TYPE_CHOICES = ["MANUAL", "AUTOMATIC", "MANUAL|AUTOMATIC", "PREMIUM_CARS", "LUXURY_CARS|PREMIUM_CARS"]


def generate_mock_drivers(count=100, num_franchises=3, output_file="mock_drivers.csv", day=None):
    """
    Generates a fleet snapshot: registry status, car types, attendance for `day`
    and a last known location scattered ~10km around the city center.
    """
    day = day or datetime.now().date()
    shift_start = datetime.combine(day, datetime.min.time()) + timedelta(hours=6)

    rows = []
    for i in range(count):
        checked_in = np.random.random() < 0.85
        rows.append({
            "driver_id": f"DRV-{str(i + 1).zfill(3)}",
            "franchise_id": f"FR-{np.random.randint(1, num_franchises + 1)}",
            "status": np.random.choice(["ACTIVE", "INACTIVE", "BLOCKED"], p=[0.85, 0.1, 0.05]),
            "car_types": np.random.choice(CAR_TYPE_CHOICES, p=[0.3, 0.3, 0.2, 0.15, 0.05]),
            "banned_globally": bool(np.random.random() < 0.02),
            "lat": np.round(CENTER_LAT + np.random.uniform(-0.075, 0.075), 6),
            "lon": np.round(CENTER_LON + np.random.uniform(-0.075, 0.075), 6),
            "day": day.isoformat(),
            "checked_in": checked_in,
            "attendance_status": np.random.choice(["PRESENT", "PARTIAL"]) if checked_in else "ABSENT",
            "checked_in_at": (shift_start + timedelta(minutes=int(np.random.randint(0, 180)))).isoformat()
            if checked_in else "",
            "active_trip_count": int(np.random.choice([0, 0, 0, 1])),
        })

    df = pd.DataFrame(rows)
    df.to_csv(output_file, index=False)
    print(f"Generated {count} mock drivers into '{output_file}'.")
    print(df["status"].value_counts().to_string())
    return df


def generate_trip_ledger(drivers, days=30, output_file="mock_trip_ledger.csv", end_day=None):
    """
    Generates a trip ledger (one row per trip outcome) for the given drivers over `days` days.
    Fares are whole currency units so daily totals stay exact.
    """
    end_day = end_day or datetime.now().date()
    rows = []
    for driver_id in drivers["driver_id"]:
        for offset in range(days):
            day = end_day - timedelta(days=offset)
            for _ in range(np.random.randint(0, 12)):
                outcome = np.random.choice(["completed", "cancelled", "rejected"], p=[0.85, 0.07, 0.08])
                hour = int(np.random.randint(6, 22))
                rows.append({
                    "trip_id": f"T-{str(uuid.uuid4())[:8]}",
                    "driver_id": driver_id,
                    "outcome": outcome,
                    "fare_amount": int(np.random.randint(80, 260)) if outcome == "completed" else 0,
                    "timestamp": datetime.combine(day, datetime.min.time()).replace(hour=hour).isoformat(),
                    "rating": int(np.random.choice([3, 4, 5], p=[0.1, 0.3, 0.6])) if outcome == "completed" else "",
                })

    df = pd.DataFrame(rows)
    df.to_csv(output_file, index=False)
    print(f"Generated {len(df)} trip outcomes into '{output_file}'.")
    return df


if __name__ == "__main__":
    fleet = generate_mock_drivers()
    generate_trip_ledger(fleet)
