import unittest
from flask import Flask

from shopledger.extensions import db
from shopledger.entities import SHOP_PROFILE_ID, default_shop_profile
from shopledger.models import Preference
from shopledger.services.entity_store import EntityStore
from shopledger.services.preferences_service import (
    DEFAULT_LANGUAGE,
    LANGUAGE_KEY,
    PreferenceStore,
)
from shopledger.services.repository import SETTINGS
from shopledger.services.session_service import SessionGate
from shopledger.validation import ValidationError


class PreferenceAndSessionTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = Flask(__name__)
        cls.app.config.update(
            SECRET_KEY="test",
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            TESTING=True,
        )
        db.init_app(cls.app)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        from shopledger import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(Preference).delete()
        db.session.commit()

        self.preferences = PreferenceStore()
        self.preferences.load()
        self.store = EntityStore(default_shop_profile("1234"))
        self.gate = SessionGate(self.store, self.preferences)

    def test_defaults(self):
        self.assertEqual(self.preferences.language, DEFAULT_LANGUAGE)
        self.assertFalse(self.gate.is_logged_in)

    def test_login_with_matching_pin(self):
        self.assertTrue(self.gate.login("1234"))
        self.assertTrue(self.gate.is_logged_in)

    def test_login_with_wrong_pin(self):
        self.assertFalse(self.gate.login("0000"))
        self.assertFalse(self.gate.login(""))
        self.assertFalse(self.gate.login(None))
        self.assertFalse(self.gate.is_logged_in)

    def test_pin_follows_saved_profile(self):
        self.store.replace_all(SETTINGS, {SHOP_PROFILE_ID: default_shop_profile("777")})

        self.assertFalse(self.gate.login("1234"))
        self.assertTrue(self.gate.login("777"))

    def test_logout(self):
        self.gate.login("1234")
        self.gate.logout()
        self.assertFalse(self.gate.is_logged_in)

    def test_login_flag_survives_reload(self):
        self.gate.login("1234")

        reloaded = PreferenceStore()
        reloaded.load()
        self.assertTrue(reloaded.is_logged_in)

    def test_language_persisted(self):
        self.preferences.set_language("bn")

        reloaded = PreferenceStore()
        reloaded.load()
        self.assertEqual(reloaded.language, "bn")
        self.assertEqual(db.session.get(Preference, LANGUAGE_KEY).value_json, "bn")

    def test_unsupported_language_rejected(self):
        with self.assertRaises(ValidationError):
            self.preferences.set_language("fr")
        self.assertEqual(self.preferences.language, DEFAULT_LANGUAGE)

    def test_stored_garbage_language_falls_back(self):
        self.preferences.set(LANGUAGE_KEY, "klingon")
        self.assertEqual(self.preferences.language, DEFAULT_LANGUAGE)


if __name__ == "__main__":
    unittest.main()
