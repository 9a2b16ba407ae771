"""
Tests for service item masters
"""

from billing.modules.items.models import ServiceItem
from billing.modules.items.service import ServiceItemService


class TestEnsureItems:

    def test_creates_each_name_once(self, db_session):
        created = ServiceItemService(db_session).ensure_items(["SEO", "seo ", "Website Design", "", None])
        db_session.commit()

        assert created == 2
        names = sorted(name for (name,) in db_session.query(ServiceItem.name).all())
        assert names == ["SEO", "Website Design"]

    def test_skips_existing(self, db_session):
        db_session.add(ServiceItem(name="Website Design"))
        db_session.commit()

        assert ServiceItemService(db_session).ensure_items(["website design", "TeleCalling"]) == 1
        item = db_session.query(ServiceItem).filter(ServiceItem.name == "TeleCalling").one()
        assert item.item_type == "Service"
        assert item.sales_description == "TeleCalling"
