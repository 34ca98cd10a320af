"""
Synthetic Sales & Review Dataset Generator
Writes an order ledger, a customer report and one review export per
product line, shaped like the store's CSV exports.
"""

import random
from datetime import date, timedelta
from pathlib import Path

import numpy as np
import polars as pl
from faker import Faker

fake = Faker()
random.seed(42)
np.random.seed(42)
Faker.seed(42)

OUTPUT_DIR = Path(__file__).parent.parent / "data" / "generated"
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

PRODUCT_TYPES = {
    "Easy Stretch": ("EasyStretch Diabetic Socks", "viasox-easystretch-socks", 24.99),
    "ES Bundle": ("EasyStretch 6-Pack", "viasox-easystretch-bundle", 119.99),
    "Compression Socks": ("Compression Socks 15-20mmHg", "viasox-compression-socks", 29.99),
    "COM Bundle": ("Compression 6-Pack", "viasox-compression-bundle", 139.99),
    "Ankle Compression Socks": ("Ankle Compression Socks", "viasox-ankle-compression-socks", 22.99),
    "Mystery": ("Mystery Pair", "mystery-pair", 9.99),
}

# Fragments chosen to exercise both segmentation layers
REVIEW_FRAGMENTS = [
    "As a nurse working 12 hour shifts these are a lifesaver.",
    "Bought these for my mom and she loves them, perfect gift.",
    "My diabetic neuropathy makes most socks unbearable.",
    "I stand all day in retail and my feet used to ache.",
    "My swollen ankles went down within a week.",
    "So soft and comfortable, like wearing nothing at all.",
    "Love the pattern, I get compliments every time.",
    "Held up after many washes, well made and worth every penny.",
    "I was skeptical but pleasantly surprised.",
    "Honestly a game changer, no more pain at night.",
    "This is my third pair and I keep coming back.",
    "Great for long flights and road trips.",
    "Fast shipping.",
]


def _email(i: int) -> str:
    return f"{fake.user_name()}{i}@{fake.free_email_domain()}"


# ==========================================
# CUSTOMERS
# ==========================================
def generate_customers(n=5000):
    print(f"📊 Generating {n:,} customers...")

    emails = [_email(i) for i in range(n)]
    first_orders = [fake.date_between(start_date="-2y", end_date="-30d").isoformat() for _ in range(n)]

    df = pl.DataFrame({
        "Customer email": emails,
        "Shipping city": [fake.city() for _ in range(n)],
        "Shipping region": [fake.state() for _ in range(n)],
        "Shipping country": np.random.choice(
            ["United States", "Canada", "United Kingdom"], n, p=[0.85, 0.10, 0.05]
        ),
        "Customer first order date": first_orders,
        "Net sales": np.round(np.random.uniform(20, 900, n), 2),
        "Total sales": np.round(np.random.uniform(25, 1000, n), 2),
        "Orders": np.random.randint(1, 12, n),
        "Day": first_orders,
    })

    df.write_csv(OUTPUT_DIR / "customers.csv")
    print(f"   ✅ customers.csv: {n:,} rows")
    return df


# ==========================================
# ORDER LINES
# ==========================================
def generate_orders(n=50000, emails=None):
    print(f"📊 Generating {n:,} order lines...")

    types = list(PRODUCT_TYPES)
    chosen = np.random.choice(types, n, p=[0.35, 0.10, 0.25, 0.08, 0.17, 0.05])
    quantity = np.random.randint(1, 4, n)
    unit_price = np.array([PRODUCT_TYPES[t][2] for t in chosen])
    gross = np.round(unit_price * quantity, 2)
    discount = np.random.choice(["", "", "", "WELCOME10", "VIP20"], n)
    net = np.round(gross * np.where(discount == "", 1.0, 0.85), 2)

    base = date.today() - timedelta(days=365)
    days = [(base + timedelta(days=int(d))).isoformat() for d in np.random.randint(0, 365, n)]

    df = pl.DataFrame({
        "Customer email": np.random.choice(emails, n),
        "Product title": [PRODUCT_TYPES[t][0] for t in chosen],
        "Product type": chosen,
        "Quantity ordered": quantity,
        "Net sales": net,
        "Total sales": gross,
        "Discount code": discount,
        "Day": days,
    })

    df.write_csv(OUTPUT_DIR / "orders.csv")
    print(f"   ✅ orders.csv: {n:,} rows")
    return df


# ==========================================
# REVIEWS
# ==========================================
def generate_reviews(n=2000, emails=None):
    print(f"📊 Generating {n:,} reviews per product line...")

    exports = {
        "EasyStretch": "viasox-easystretch-socks",
        "Compression": "viasox-compression-socks",
        "Ankle Compression": "viasox-ankle-compression-socks",
    }
    for line, handle in exports.items():
        rows = []
        for _ in range(n):
            fragments = random.sample(REVIEW_FRAGMENTS, k=random.randint(1, 3))
            rows.append({
                "Email": random.choice(emails) if random.random() < 0.6 else fake.email(),
                "Review": " ".join(fragments),
                "Rating": random.choices([5, 4, 3, 2, 1], weights=[70, 15, 7, 4, 4])[0],
                "Date": fake.date_between(start_date="-1y").isoformat(),
                "Full Name": fake.name(),
                "Verified": random.choice(["TRUE", "FALSE"]),
                "Product Handle": handle,
                "Variant": random.choice(["S/M", "L/XL", "XXL"]),
            })

        name = f"Viasox Reviews {line}.csv"
        pl.DataFrame(rows).write_csv(OUTPUT_DIR / name)
        print(f"   ✅ {name}: {n:,} rows")


# ==========================================
# MAIN
# ==========================================
def main():
    print("=" * 60)
    print("🧦 Sales & Review Dataset Generator")
    print("=" * 60 + "\n")

    customers_df = generate_customers(5000)
    emails = customers_df["Customer email"].to_list()

    generate_orders(50000, emails)
    generate_reviews(2000, emails)

    print("\n" + "=" * 60)
    print("✅ Dataset Generation Complete!")
    print("=" * 60)
    print(f"\n📁 Output: {OUTPUT_DIR}\n")

    for f in sorted(OUTPUT_DIR.glob("*.csv")):
        size = f.stat().st_size / 1024 / 1024
        print(f"   📄 {f.name}: {size:.2f} MB")


if __name__ == "__main__":
    main()
