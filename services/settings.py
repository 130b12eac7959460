from dataclasses import dataclass

from services.schedule_policy import WeekdayRule


@dataclass(frozen=True)
class BookingSettings:
    timezone: str = "Europe/London"
    slot_duration_minutes: int = 60
    refund_cutoff_hours: int = 24
    require_registered_member: bool = True
    maintain_default_days: int = 14
    maintain_max_days: int = 31
    slot_list_max_days: int = 14
    invite_ttl_days: int = 7
    schedule_rules: tuple = ()

    @classmethod
    def from_config(cls, config) -> "BookingSettings":
        rules = tuple(
            WeekdayRule(
                weekday=int(r["weekday"]),
                location=r["location"],
                start_hour=int(r["start_hour"]),
                end_hour=int(r["end_hour"]),
            )
            for r in config.get("SCHEDULE_RULES", ())
        )
        return cls(
            timezone=config.get("BUSINESS_TIMEZONE", "Europe/London"),
            slot_duration_minutes=int(config.get("SLOT_DURATION_MINUTES", 60)),
            refund_cutoff_hours=int(config.get("REFUND_CUTOFF_HOURS", 24)),
            require_registered_member=bool(config.get("REQUIRE_REGISTERED_MEMBER", True)),
            maintain_default_days=int(config.get("MAINTAIN_DEFAULT_DAYS", 14)),
            maintain_max_days=int(config.get("MAINTAIN_MAX_DAYS", 31)),
            slot_list_max_days=int(config.get("SLOT_LIST_MAX_DAYS", 14)),
            invite_ttl_days=int(config.get("INVITE_TTL_DAYS", 7)),
            schedule_rules=rules,
        )
