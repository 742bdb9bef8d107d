import unittest
from flask import Flask

from barpos.extensions import db
from barpos.errors import NotFoundError, InvalidInputError
from barpos.models import Tenant, Table
from barpos.services import tenant_service


class TenantServiceTests(unittest.TestCase):
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
        from barpos import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(Table).delete()
        db.session.query(Tenant).delete()
        db.session.commit()

        self.tenant = tenant_service.create_tenant(name="Corner Pub", slug="Corner-Pub")

    def test_slug_is_normalized(self):
        self.assertEqual(self.tenant.slug, "corner-pub")
        self.assertTrue(self.tenant.is_active)

    def test_duplicate_slug_rejected(self):
        with self.assertRaises(InvalidInputError):
            tenant_service.create_tenant(name="Other", slug="corner-pub")

    def test_blank_name_rejected(self):
        with self.assertRaises(InvalidInputError):
            tenant_service.create_tenant(name="  ", slug="blank")

    def test_inactive_tenant_not_found(self):
        self.tenant.is_active = False
        db.session.commit()
        with self.assertRaises(NotFoundError):
            tenant_service.require_active_tenant(self.tenant.id)

    def test_create_table(self):
        table = tenant_service.create_table(tenant_id=self.tenant.id, number=3, label="Bar")
        self.assertEqual(table.number, 3)
        self.assertEqual(
            tenant_service.require_table_in_tenant(table.id, self.tenant.id).id,
            table.id,
        )

    def test_duplicate_table_number_rejected(self):
        tenant_service.create_table(tenant_id=self.tenant.id, number=3)
        with self.assertRaises(InvalidInputError):
            tenant_service.create_table(tenant_id=self.tenant.id, number=3)

    def test_table_number_must_be_positive(self):
        with self.assertRaises(InvalidInputError):
            tenant_service.create_table(tenant_id=self.tenant.id, number=0)

    def test_table_of_other_tenant_not_found(self):
        other = tenant_service.create_tenant(name="Other", slug="other")
        table = tenant_service.create_table(tenant_id=other.id, number=1)
        with self.assertRaises(NotFoundError):
            tenant_service.require_table_in_tenant(table.id, self.tenant.id)

    def test_inactive_table_rejected_unless_allowed(self):
        table = tenant_service.create_table(tenant_id=self.tenant.id, number=5)
        table.is_active = False
        db.session.commit()

        with self.assertRaises(InvalidInputError):
            tenant_service.require_table_in_tenant(table.id, self.tenant.id)
        found = tenant_service.require_table_in_tenant(table.id, self.tenant.id, require_active=False)
        self.assertEqual(found.id, table.id)


    def test_list_tables_by_number_and_active(self):
        tenant_service.create_table(tenant_id=self.tenant.id, number=4, label="Patio")
        tenant_service.create_table(tenant_id=self.tenant.id, number=2, label="Bar", is_active=False)

        self.assertEqual([t.number for t in tenant_service.list_tables(tenant_id=self.tenant.id)], [2, 4])
        self.assertEqual(
            [t.number for t in tenant_service.list_tables(tenant_id=self.tenant.id, is_active=True)],
            [4],
        )
        self.assertEqual(
            [t.label for t in tenant_service.list_tables(tenant_id=self.tenant.id, query="pat")],
            ["Patio"],
        )

    def test_update_table(self):
        table = tenant_service.create_table(tenant_id=self.tenant.id, number=1)
        updated = tenant_service.update_table(
            tenant_id=self.tenant.id,
            table_id=table.id,
            patch={"number": 8, "label": "Corner", "is_active": False},
        )
        self.assertEqual(updated.number, 8)
        self.assertEqual(updated.label, "Corner")
        self.assertFalse(updated.is_active)

    def test_update_table_keeps_own_number(self):
        table = tenant_service.create_table(tenant_id=self.tenant.id, number=1)
        updated = tenant_service.update_table(tenant_id=self.tenant.id, table_id=table.id, patch={"number": 1})
        self.assertEqual(updated.number, 1)

    def test_delete_table(self):
        table = tenant_service.create_table(tenant_id=self.tenant.id, number=6)
        tenant_service.delete_table(tenant_id=self.tenant.id, table_id=table.id)
        with self.assertRaises(NotFoundError):
            tenant_service.require_table_in_tenant(table.id, self.tenant.id, require_active=False)


if __name__ == "__main__":
    unittest.main()
