"""
Tests for SettingsService: default seeding, rate lookup and updates.
"""
import json
import pytest
from decimal import Decimal

from waterbill.exceptions import InvalidInput, NotFound
from waterbill.models.ontology import Setting, AuditLog, AuditAction
from waterbill.services.settings_service import SettingsService, DEFAULT_SETTINGS


class TestEnsureDefaults:
    """ensure_defaults()"""

    def test_seeds_all_defaults(self, db_session):
        stats = SettingsService(db_session).ensure_defaults()

        assert stats == {"settings": len(DEFAULT_SETTINGS)}
        values = {s.key: s.value for s in db_session.query(Setting).all()}
        assert values == {
            "RATE_K1": "1200",
            "RATE_K2": "3000",
            "LIMIT_K1": "40",
            "ADMIN_FEE": "3000",
            "PENALTY_AMOUNT": "5000",
        }

    def test_is_idempotent(self, db_session):
        service = SettingsService(db_session)
        service.ensure_defaults()

        stats = service.ensure_defaults()

        assert stats == {"settings": 0}
        assert db_session.query(Setting).count() == len(DEFAULT_SETTINGS)

    def test_keeps_existing_values(self, db_session):
        db_session.add(Setting(key="RATE_K1", value="1500"))
        db_session.commit()

        stats = SettingsService(db_session).ensure_defaults()

        assert stats == {"settings": len(DEFAULT_SETTINGS) - 1}
        assert SettingsService(db_session).get_value("RATE_K1") == Decimal("1500")


class TestGetValue:
    """get_value() / get_current_rates()"""

    def test_returns_decimal(self, tariff):
        assert tariff.get_value("PENALTY_AMOUNT") == Decimal("5000")

    def test_missing_key(self, db_session):
        with pytest.raises(NotFound):
            SettingsService(db_session).get_value("RATE_K1")

    def test_current_rates(self, tariff):
        rates = tariff.get_current_rates()

        assert rates.rate_k1 == Decimal("1200")
        assert rates.rate_k2 == Decimal("3000")
        assert rates.limit_k1 == 40
        assert rates.admin_fee == Decimal("3000")

    def test_rates_incomplete_without_seed(self, db_session):
        db_session.add(Setting(key="RATE_K1", value="1200"))
        db_session.commit()

        with pytest.raises(NotFound):
            SettingsService(db_session).get_current_rates()


class TestUpdateSetting:
    """update_setting()"""

    def test_updates_value_and_audits(self, tariff, db_session, actor):
        setting = tariff.update_setting("RATE_K2", "3500", actor)

        assert setting.value == "3500"
        log = db_session.query(AuditLog).filter(AuditLog.entity_type == "settings").one()
        assert log.action == AuditAction.UPDATE
        assert log.performed_by == "operator1"
        assert json.loads(log.details) == {"key": "RATE_K2", "before": "3000", "after": "3500"}

    def test_new_rate_applies_to_next_calculation(self, tariff):
        tariff.update_setting("RATE_K1", "1300")

        assert tariff.get_current_rates().rate_k1 == Decimal("1300")

    def test_unknown_key(self, tariff):
        with pytest.raises(NotFound):
            tariff.update_setting("RATE_K3", "10")

    @pytest.mark.parametrize("value", ["abc", "-5", "NaN"])
    def test_rejects_non_numeric_or_negative(self, tariff, value):
        with pytest.raises(InvalidInput):
            tariff.update_setting("ADMIN_FEE", value)

    def test_limit_must_be_whole(self, tariff):
        with pytest.raises(InvalidInput):
            tariff.update_setting("LIMIT_K1", "40.5")

    def test_rejected_update_leaves_value(self, tariff, db_session):
        with pytest.raises(InvalidInput):
            tariff.update_setting("ADMIN_FEE", "-1")

        assert tariff.get_value("ADMIN_FEE") == Decimal("3000")
        assert db_session.query(AuditLog).count() == 0

    def test_list_is_ordered_by_key(self, tariff):
        keys = [s.key for s in tariff.list_settings()]
        assert keys == sorted(keys)
