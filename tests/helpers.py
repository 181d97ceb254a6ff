# tests/helpers.py
#
# Fakes for time and the push transport shared by unit and integration tests.
import asyncio

from remindd.core.constants import DeliveryStatus
from remindd.core.schemas import CooldownRecord, UserSubscription

NOW = 1_000_000
COOLDOWN = 86400
APP_URL = "https://app.example"
ENDPOINT = "https://push.example/notify"
ADDRESS = "0xabcdef0123456789abcdef0123456789abcdef01"
OTHER_ADDRESS = "0x1111111111111111111111111111111111111111"


class FakeClock:
    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class ManualSleep:
    """Stands in for asyncio.sleep: records delays and blocks until release()."""

    def __init__(self):
        self.delays: list[float] = []
        self._released = asyncio.Event()

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await self._released.wait()

    def release(self) -> None:
        self._released.set()


class FakePushClient:
    """Records every send and answers with a fixed status."""

    def __init__(self, status: DeliveryStatus = DeliveryStatus.DELIVERED):
        self.status = status
        self.sent: list[dict] = []

    async def send(self, endpoint, notification_id, title, body, target_url, token):
        self.sent.append(
            {
                "endpoint": endpoint,
                "notification_id": notification_id,
                "title": title,
                "body": body,
                "target_url": target_url,
                "token": token,
            }
        )
        return self.status


async def settle(rounds: int = 20) -> None:
    """Lets ready tasks run; nothing in these tests waits on real I/O."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_subscription(user_id: int = 1, *records: CooldownRecord) -> UserSubscription:
    subscription = UserSubscription(
        user_id=user_id,
        delivery_token=f"token-{user_id}",
        delivery_endpoint=ENDPOINT,
    )
    for record in records:
        subscription.put(record)
    return subscription


def record_ending_at(cooldown_end: int, address: str = ADDRESS, network: str = "mainnet") -> CooldownRecord:
    return CooldownRecord.start(address, network, cooldown_end - COOLDOWN, COOLDOWN)
