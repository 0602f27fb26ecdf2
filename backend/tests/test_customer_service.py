# Overview: Pytest coverage for the phone-keyed customer upsert.

from backoffice.models import Customer
from backoffice.services.concurrency import run_atomic
from backoffice.services.customer_service import upsert_customer


class TestUpsertCustomer:

    def test_guest_order_has_no_customer(self, db_session):
        assert run_atomic(lambda: upsert_customer("  ", None, "Somewhere")) is None
        assert db_session.query(Customer).count() == 0

    def test_new_customer_created(self, db_session):
        customer_id = run_atomic(lambda: upsert_customer("Ayesha", "03001234567", "Block 5"))

        customer = db_session.get(Customer, customer_id)
        assert customer.name == "Ayesha"
        assert customer.phone == "03001234567"
        assert customer.address == "Block 5"

    def test_name_synthesized_from_phone(self, db_session):
        customer_id = run_atomic(lambda: upsert_customer("", "03001234567", None))

        assert db_session.get(Customer, customer_id).name == "Customer 03001234567"

    def test_name_only_customer(self, db_session):
        customer_id = run_atomic(lambda: upsert_customer("Walk-in Bilal", None, None))

        customer = db_session.get(Customer, customer_id)
        assert customer.name == "Walk-in Bilal"
        assert customer.phone is None

    def test_existing_phone_merges_non_empty_values(self, db_session):
        first = run_atomic(lambda: upsert_customer("Ayesha", "0300", "Block 5"))

        second = run_atomic(lambda: upsert_customer("", " 0300 ", "Block 9"))

        assert second == first
        customer = db_session.get(Customer, first)
        assert customer.name == "Ayesha"
        assert customer.address == "Block 9"
        assert db_session.query(Customer).count() == 1

    def test_existing_phone_keeps_address_when_blank(self, db_session):
        first = run_atomic(lambda: upsert_customer("Ayesha", "0300", "Block 5"))

        run_atomic(lambda: upsert_customer("Ayesha K", "0300", ""))

        customer = db_session.get(Customer, first)
        assert customer.name == "Ayesha K"
        assert customer.address == "Block 5"
