"""
Concurrency safety tests.

Demonstrates:
1. Two drivers accepting the same order concurrently: exactly one wins,
   the other gets a conflict, and the stored driver is the winner.
2. A stale read (status changed after it was loaded) is caught by the
   conditional update rather than overwriting the newer state.
3. The conditional update refuses to touch anything except ``status``
   and ``driver_id``.
"""

import asyncio

import pytest
import pytest_asyncio

from motogo.domain.entities import Location, Order
from motogo.domain.enums import OrderStatus, OrderType
from motogo.domain.errors import ConflictError
from motogo.domain.lifecycle import OrderLifecycle, OrderRequest
from motogo.infrastructure.repositories import OrderRepository

from tests.conftest import DROPOFF, PICKUP


@pytest_asyncio.fixture
async def order_id(session_factory, principals, pricing_engine) -> int:
    async with session_factory() as session:
        order = await OrderLifecycle(OrderRepository(session), pricing_engine).create(
            principals["customer-1"],
            OrderRequest(
                type=OrderType.RIDE,
                pickup_address="Parque Colon",
                pickup=Location(*PICKUP),
                dropoff_address="Agora Mall",
                dropoff=Location(*DROPOFF),
            ),
        )
        await session.commit()
        return order.id


class _BarrierRepository(OrderRepository):
    """Holds every reader after ``get_order`` until all of them have read.

    Forces the interleaving read, read, write, write.
    """

    def __init__(self, session, loaded: list, everyone_loaded: asyncio.Event, parties: int):
        super().__init__(session)
        self.loaded = loaded
        self.everyone_loaded = everyone_loaded
        self.parties = parties

    async def get_order(self, order_id):
        record = await super().get_order(order_id)
        self.loaded.append(order_id)
        if len(self.loaded) >= self.parties:
            self.everyone_loaded.set()
        await self.everyone_loaded.wait()
        return record


class TestConcurrentAccept:
    @pytest.mark.asyncio
    async def test_only_one_driver_wins(self, session_factory, principals, pricing_engine, order_id):
        loaded: list = []
        everyone_loaded = asyncio.Event()
        drivers = [principals["driver-1"], principals["driver-2"]]

        async def attempt(driver):
            async with session_factory() as session:
                repo = _BarrierRepository(session, loaded, everyone_loaded, len(drivers))
                try:
                    order = await OrderLifecycle(repo, pricing_engine).accept(driver, order_id)
                except ConflictError:
                    await session.rollback()
                    return None
                await session.commit()
                return order.driver_id

        results = await asyncio.gather(*(attempt(d) for d in drivers))

        winners = [r for r in results if r is not None]
        assert len(winners) == 1
        assert results.count(None) == 1

        async with session_factory() as session:
            stored = await OrderRepository(session).get_order(order_id)
        assert stored.status == OrderStatus.ACCEPTED
        assert stored.driver_id == winners[0]

    @pytest.mark.asyncio
    async def test_repeated_accept_by_same_driver_conflicts(
        self, session_factory, principals, pricing_engine, order_id
    ):
        driver = principals["driver-1"]
        async with session_factory() as session:
            lifecycle = OrderLifecycle(OrderRepository(session), pricing_engine)
            await lifecycle.accept(driver, order_id)
            await session.commit()
            with pytest.raises(ConflictError):
                await lifecycle.accept(driver, order_id)


class TestConditionalUpdate:
    @pytest.mark.asyncio
    async def test_stale_read_cannot_overwrite(self, session_factory, principals, order_id):
        # Both sides read the order while it is still pending
        async with session_factory() as s1, session_factory() as s2:
            stale = Order.from_record(await OrderRepository(s2).get_order(order_id))
            fresh = Order.from_record(await OrderRepository(s1).get_order(order_id))

            # The customer cancels first
            transition = fresh.cancel(principals["customer-1"])
            assert await OrderRepository(s1).conditional_update_status(
                order_id, transition.expected, transition.target
            ) is not None
            await s1.commit()

            # The driver's view is stale: the entity allows it, storage does not
            transition = stale.accept(principals["driver-1"])
            result = await OrderRepository(s2).conditional_update_status(
                order_id, transition.expected, transition.target, **transition.changes
            )
            assert result is None
            await s2.rollback()

        async with session_factory() as session:
            stored = await OrderRepository(session).get_order(order_id)
        assert stored.status == OrderStatus.CANCELLED
        assert stored.driver_id is None

    @pytest.mark.asyncio
    async def test_missing_order_returns_none(self, db_session, principals):
        result = await OrderRepository(db_session).conditional_update_status(
            31337, OrderStatus.PENDING, OrderStatus.ACCEPTED, driver_id="driver-1"
        )
        assert result is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["price", "customer_id", "type"])
    async def test_only_transition_fields_are_writable(self, db_session, order_id, field):
        with pytest.raises(ValueError, match="not updatable"):
            await OrderRepository(db_session).conditional_update_status(
                order_id, OrderStatus.PENDING, OrderStatus.ACCEPTED, **{field: "x"}
            )

        order = await OrderRepository(db_session).get_order(order_id)
        assert order.status == OrderStatus.PENDING
