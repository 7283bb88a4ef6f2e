"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 3 online drivers around Santo Domingo
  - 2 customers (password: ``motogo123``)
  - 5 sample orders (mix of pending, accepted, in_progress, completed)
  - 1 rating on the completed order
"""

import asyncio

from sqlalchemy import text

from motogo.auth.providers import hash_password
from motogo.config import settings
from motogo.domain.distance import haversine_km
from motogo.domain.drivers import driver_h3_cell
from motogo.domain.enums import OrderStatus, OrderType, UserRole
from motogo.domain.pricing import PricingConfig, calculate_pricing
from motogo.infrastructure.database import async_session_factory, create_all, engine
from motogo.infrastructure.models import OrderModel, RatingModel, UserModel

# Santo Domingo, Zona Colonial (approx)
CITY_LAT, CITY_LNG = 18.4861, -69.9312


DRIVERS = [
    {"id": "driver-1", "username": "motojuan", "first_name": "Juan", "last_name": "Perez",
     "email": "juan@motogo.com", "lat": 18.4861, "lng": -69.9312},
    {"id": "driver-2", "username": "motomaria", "first_name": "Maria", "last_name": "Rodriguez",
     "email": "maria@motogo.com", "lat": 18.4900, "lng": -69.9250},
    {"id": "driver-3", "username": "motopedro", "first_name": "Pedro", "last_name": "Diaz",
     "email": "pedro@motogo.com", "lat": 18.4800, "lng": -69.9400},
]

CUSTOMERS = [
    {"id": "customer-1", "username": "ana", "first_name": "Ana", "last_name": "Santos",
     "email": "ana@example.com"},
    {"id": "customer-2", "username": "luis", "first_name": "Luis", "last_name": "Fernandez",
     "email": "luis@example.com"},
]

ORDERS = [
    {
        "customer_id": "customer-1", "type": OrderType.RIDE,
        "pickup": ("Parque Colon", 18.4735, -69.8846),
        "dropoff": ("Agora Mall", 18.4838, -69.9390),
        "status": OrderStatus.PENDING, "driver_id": None,
    },
    {
        "customer_id": "customer-2", "type": OrderType.FOOD,
        "pickup": ("Av. Winston Churchill", 18.4697, -69.9401),
        "dropoff": ("Naco", 18.4780, -69.9305),
        "status": OrderStatus.PENDING, "driver_id": None,
        "description": "Two pizzas, ring the bell",
    },
    {
        "customer_id": "customer-1", "type": OrderType.DOCUMENT,
        "pickup": ("Torre Acropolis", 18.4717, -69.9403),
        "dropoff": ("Palacio Nacional", 18.4724, -69.9007),
        "status": OrderStatus.ACCEPTED, "driver_id": "driver-1",
    },
    {
        "customer_id": "customer-2", "type": OrderType.ERRAND,
        "pickup": ("Supermercado Nacional", 18.4633, -69.9361),
        "dropoff": ("Piantini", 18.4668, -69.9371),
        "status": OrderStatus.IN_PROGRESS, "driver_id": "driver-2",
        "description": "Pick up the dry cleaning",
    },
    {
        "customer_id": "customer-1", "type": OrderType.RIDE,
        "pickup": ("Malecon", 18.4560, -69.9100),
        "dropoff": ("Aeropuerto Las Americas", 18.4297, -69.6689),
        "status": OrderStatus.COMPLETED, "driver_id": "driver-3",
    },
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        password = hash_password("motogo123")

        # ── Users ─────────────────────────────────────────────────────
        for d in DRIVERS:
            session.add(
                UserModel(
                    id=d["id"],
                    username=d["username"],
                    first_name=d["first_name"],
                    last_name=d["last_name"],
                    email=d["email"],
                    password_hash=password,
                    role=UserRole.DRIVER,
                    is_online=True,
                    current_lat=d["lat"],
                    current_lng=d["lng"],
                    h3_cell=driver_h3_cell(d["lat"], d["lng"], settings.h3_resolution),
                    profile_image_url=(
                        "https://api.dicebear.com/7.x/avataaars/svg?seed="
                        + d["first_name"]
                    ),
                )
            )
        for c in CUSTOMERS:
            session.add(UserModel(password_hash=password, role=UserRole.CUSTOMER, **c))
        await session.flush()
        print(f"  Created {len(DRIVERS)} drivers, {len(CUSTOMERS)} customers")

        # ── Orders ────────────────────────────────────────────────────
        pricing = PricingConfig.from_settings(settings)
        order_models = []
        for o in ORDERS:
            p_addr, p_lat, p_lng = o["pickup"]
            d_addr, d_lat, d_lng = o["dropoff"]
            fare = calculate_pricing(haversine_km(p_lat, p_lng, d_lat, d_lng), pricing)
            m = OrderModel(
                customer_id=o["customer_id"],
                driver_id=o["driver_id"],
                type=o["type"],
                status=o["status"],
                pickup_address=p_addr,
                pickup_lat=p_lat,
                pickup_lng=p_lng,
                dropoff_address=d_addr,
                dropoff_lat=d_lat,
                dropoff_lng=d_lng,
                price=fare.order_price,
                description=o.get("description"),
            )
            session.add(m)
            order_models.append(m)
        await session.flush()
        print(f"  Created {len(order_models)} orders")

        # ── Ratings ───────────────────────────────────────────────────
        completed = order_models[-1]
        session.add(
            RatingModel(
                order_id=completed.id,
                customer_id=completed.customer_id,
                driver_id=completed.driver_id,
                rating=5,
                comment="Fast and careful, thanks!",
            )
        )
        print("  Created 1 rating")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    if settings.database_url.startswith("sqlite"):
        await create_all(engine)
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
