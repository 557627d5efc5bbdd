# backend/courtbook/core/catalog.py
"""
Inventory catalog: static courts, opening hours, hourly rates, credit
packages, points rewards and points tasks. This is configuration, never
mutated by the booking flow.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .config import settings
from .enums import Sport
from .exceptions import NotFoundException, ValidationException


@dataclass(frozen=True)
class SportCatalog:
    sport: Sport
    display_name: str
    court_count: int
    rate_per_hour: int  # credits (1 credit = 1 USD)

    @property
    def court_ids(self) -> Tuple[str, ...]:
        return tuple(court_id(self.sport, n) for n in range(1, self.court_count + 1))


@dataclass(frozen=True)
class CreditPackage:
    id: str
    name: str
    credits: int
    price_usd: int
    is_popular: bool = False


SPORTS: Dict[Sport, SportCatalog] = {
    Sport.BADMINTON: SportCatalog(Sport.BADMINTON, "Badminton", court_count=8, rate_per_hour=12),
    Sport.PICKLEBALL: SportCatalog(Sport.PICKLEBALL, "Pickleball", court_count=4, rate_per_hour=14),
}

CREDIT_PACKAGES: Tuple[CreditPackage, ...] = (
    CreditPackage("starter", "Starter", credits=50, price_usd=50),
    CreditPackage("regular", "Regular", credits=110, price_usd=100, is_popular=True),
    CreditPackage("pro", "Pro", credits=240, price_usd=200),
)


@dataclass(frozen=True)
class Reward:
    id: str
    name: str
    description: str
    points_cost: int
    category: str


@dataclass(frozen=True)
class PointsTask:
    id: str
    name: str
    description: str
    points_reward: int
    category: str


# Ordered by category, then cost
REWARDS: Tuple[Reward, ...] = (
    Reward("discount-2", "$2 Booking Discount", "$2 off your next booking", 200, "discounts"),
    Reward("discount-5", "$5 Booking Discount", "$5 off your next booking", 450, "discounts"),
    Reward("discount-10", "$10 Booking Discount", "$10 off your next booking", 850, "discounts"),
    Reward("no-cancel-fee", "No Cancellation Fee", "30 days of free cancellation", 300, "features"),
    Reward("priority-booking", "Priority Booking", "Skip the queue for a day", 400, "features"),
    Reward("court-upgrade", "Free Court Upgrade", "Premium court if available", 500, "features"),
    Reward("weekend-discount", "25% Off Weekend", "25% off a weekend booking", 600, "vouchers"),
    Reward("free-hour", "Free 1-Hour Booking", "One free hour of court time", 1200, "vouchers"),
)

POINTS_TASKS: Tuple[PointsTask, ...] = (
    PointsTask("daily-login", "Daily Check-in", "Open the app and check in", 10, "engagement"),
    PointsTask("upload-photo", "Upload Profile Photo", "Add a profile picture", 50, "profile"),
    PointsTask("complete-profile", "Complete Your Profile", "Fill in your profile", 75, "profile"),
    PointsTask("share-booking", "Share Your Booking", "Share a booking online", 15, "social"),
    PointsTask("write-review", "Write a Review", "Review a court or the facility", 30, "social"),
    PointsTask("refer-friend", "Refer a Friend", "Invite a friend to join", 200, "social"),
)


def court_id(sport: Sport, number: int) -> str:
    return f"{Sport(sport).value}-{number}"


def get_sport(sport: "Sport | str") -> SportCatalog:
    try:
        return SPORTS[Sport(sport)]
    except ValueError:
        raise ValidationException(
            f"Unknown sport: {sport}", details={"sport": str(sport)}
        ) from None


def rate_per_hour(sport: "Sport | str") -> int:
    return get_sport(sport).rate_per_hour


def court_ids(sport: "Sport | str") -> Tuple[str, ...]:
    return get_sport(sport).court_ids


def sport_for_court(court: str) -> Optional[Sport]:
    for sport in SPORTS.values():
        if court in sport.court_ids:
            return sport.sport
    return None


def compute_price(sport: "Sport | str", duration_hours: int, court_count: int) -> int:
    """total_price = rate_per_hour[sport] x duration x court_count."""
    return rate_per_hour(sport) * duration_hours * court_count


def opening_hours() -> Tuple[int, int]:
    return settings.opening_hour, settings.closing_hour


def slot_hours() -> List[int]:
    """Bookable start hours: opening hour through one hour before closing."""
    opening, closing = opening_hours()
    return list(range(opening, closing))


def get_credit_package(package_id: str) -> CreditPackage:
    for package in CREDIT_PACKAGES:
        if package.id == package_id:
            return package
    raise NotFoundException(
        f"Credit package {package_id} not found", details={"package_id": package_id}
    )


def get_reward(reward_id: str) -> Reward:
    for reward in REWARDS:
        if reward.id == reward_id:
            return reward
    raise NotFoundException(f"Reward {reward_id} not found", details={"reward_id": reward_id})


def rewards_by_category() -> Dict[str, List[Reward]]:
    grouped: Dict[str, List[Reward]] = {}
    for reward in REWARDS:
        grouped.setdefault(reward.category, []).append(reward)
    return grouped


def get_points_task(task_id: str) -> PointsTask:
    for task in POINTS_TASKS:
        if task.id == task_id:
            return task
    raise NotFoundException(f"Task {task_id} not found", details={"task_id": task_id})
