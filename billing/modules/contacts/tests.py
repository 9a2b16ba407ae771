"""
Tests for customer masters

Covers:
- Placeholder email generation for auto-created customers
- Case-insensitive lookup and bulk creation
"""

import pytest

from billing.modules.contacts.models import Customer
from billing.modules.contacts.service import CustomerService, placeholder_email


# ===== FIXTURES =====

@pytest.fixture
def service(db_session):
    return CustomerService(db_session)


class TestPlaceholderEmail:

    def test_strips_non_alphanumerics(self):
        assert placeholder_email("Acme Traders Pvt. Ltd.", set()) == "acmetraderspvtltd@imported.local"

    def test_counter_when_taken(self):
        taken = {"acme@imported.local", "acme1@imported.local"}
        assert placeholder_email("ACME", taken) == "acme2@imported.local"

    def test_symbol_only_name(self):
        assert placeholder_email("***", set()) == "customer@imported.local"


class TestEnsureCustomers:

    def test_creates_missing_customers(self, service, db_session):
        created = service.ensure_customers({"Acme Traders": "India", "Globex Inc": "USA"})
        db_session.commit()

        assert created == 2
        acme = service.find_by_name("  acme traders ")
        assert acme.place_of_supply == "Gujarat"
        assert acme.currency == "INR"
        globex = service.find_by_name("Globex Inc")
        assert globex.place_of_supply is None
        assert globex.currency == "USD"

    def test_existing_names_are_left_alone(self, service, db_session):
        db_session.add(Customer(display_name="Acme Traders", email="acme@imported.local"))
        db_session.commit()

        created = service.ensure_customers({"ACME TRADERS": "India", "Acme": None})
        db_session.commit()

        assert created == 1
        acme = service.find_by_name("Acme")
        assert acme.country == "India"
        assert acme.email == "acme1@imported.local"
        assert db_session.query(Customer).count() == 2

    def test_blank_lookup(self, service):
        assert service.find_by_name("  ") is None
        assert service.find_by_name(None) is None
