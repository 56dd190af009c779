"""
Tariff settings service
Key/value tariff parameters with idempotent default seeding
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from waterbill.exceptions import InvalidInput, NotFound
from waterbill.models.ontology import Setting, AuditAction
from waterbill.security.context import ActorContext
from waterbill.services.audit_service import AuditService
from waterbill.services.billing_calculator import TariffRates

logger = logging.getLogger(__name__)

RATE_K1 = "RATE_K1"
RATE_K2 = "RATE_K2"
LIMIT_K1 = "LIMIT_K1"
ADMIN_FEE = "ADMIN_FEE"
PENALTY_AMOUNT = "PENALTY_AMOUNT"

DEFAULT_SETTINGS = [
    {"key": RATE_K1, "value": "1200", "description": "Rate per m³ for K1 (first tier)"},
    {"key": RATE_K2, "value": "3000", "description": "Rate per m³ for K2 (above the K1 limit)"},
    {"key": LIMIT_K1, "value": "40", "description": "Usage limit in m³ billed at the K1 rate"},
    {"key": ADMIN_FEE, "value": "3000", "description": "Flat administration fee per bill"},
    {"key": PENALTY_AMOUNT, "value": "5000", "description": "Late payment penalty"},
]

# Keys whose value must be a whole number
INTEGER_KEYS = {LIMIT_K1}


def _parse_value(key: str, value: str) -> Decimal:
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidInput(f"Setting {key} must be a number, got {value!r}")
    if not parsed.is_finite() or parsed < 0:
        raise InvalidInput(f"Setting {key} must be a non-negative number")
    if key in INTEGER_KEYS and parsed != parsed.to_integral_value():
        raise InvalidInput(f"Setting {key} must be a whole number")
    return parsed


class SettingsService:
    """Tariff settings store"""

    def __init__(self, db: Session):
        self.db = db

    def ensure_defaults(self) -> Dict[str, int]:
        """Insert missing default keys. Idempotent, existing values are kept.

        Returns dict with count of created items.
        """
        stats = {"settings": 0}

        for item in DEFAULT_SETTINGS:
            existing = self.db.query(Setting).filter(Setting.key == item["key"]).first()
            if not existing:
                self.db.add(Setting(**item))
                stats["settings"] += 1

        if stats["settings"] > 0:
            self.db.commit()
            logger.info(f"Seeded {stats['settings']} default tariff settings")
        return stats

    def get_setting(self, key: str) -> Optional[Setting]:
        return self.db.query(Setting).filter(Setting.key == key).first()

    def list_settings(self) -> List[Setting]:
        return self.db.query(Setting).order_by(Setting.key).all()

    def get_value(self, key: str) -> Decimal:
        """Current numeric value of a setting"""
        setting = self.get_setting(key)
        if not setting:
            raise NotFound(f"Setting {key} not found")
        return _parse_value(key, setting.value)

    def get_current_rates(self) -> TariffRates:
        """Tariff snapshot used for a new bill"""
        return TariffRates(
            rate_k1=self.get_value(RATE_K1),
            rate_k2=self.get_value(RATE_K2),
            limit_k1=int(self.get_value(LIMIT_K1)),
            admin_fee=self.get_value(ADMIN_FEE),
        )

    def get_penalty_amount(self) -> Decimal:
        return self.get_value(PENALTY_AMOUNT)

    def update_setting(self, key: str, value: str, actor: Optional[ActorContext] = None) -> Setting:
        """Change one setting. Bills already issued keep their amounts."""
        setting = self.get_setting(key)
        if not setting:
            raise NotFound(f"Setting {key} not found")

        parsed = _parse_value(key, value)
        old_value = setting.value

        try:
            setting.value = format(parsed, "f")
            AuditService(self.db).log(
                action=AuditAction.UPDATE,
                entity_type="settings",
                entity_id=setting.id,
                actor=actor,
                details={"key": key, "before": old_value, "after": setting.value},
                description=f"Updated setting {key} from {old_value} to {setting.value}",
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.warning(f"Setting update for {key} rolled back", exc_info=True)
            raise

        self.db.refresh(setting)
        logger.info(f"Setting {key} changed from {old_value} to {setting.value}")
        return setting
