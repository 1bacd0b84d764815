import unittest

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from halistock import create_app
from halistock.extensions import db
from halistock.services.concurrency import run_with_retry
from halistock.validation import StoreUnavailableError


class RunWithRetryTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def test_retries_stale_writes_until_success(self):
        calls = []

        def op():
            calls.append(1)
            if len(calls) < 3:
                raise StaleDataError("version mismatch")
            return "ok"

        self.assertEqual(run_with_retry(op, backoff_base=0), "ok")
        self.assertEqual(len(calls), 3)

    def test_exhausted_retries_raise_store_unavailable(self):
        def op():
            raise OperationalError("UPDATE rentals", {}, Exception("database is locked"))

        with self.assertRaises(StoreUnavailableError) as ctx:
            run_with_retry(op, attempts=2, backoff_base=0)
        self.assertIsInstance(ctx.exception.__cause__, OperationalError)

    def test_other_errors_propagate_without_retry(self):
        calls = []

        def op():
            calls.append(1)
            raise KeyError("boom")

        with self.assertRaises(KeyError):
            run_with_retry(op, backoff_base=0)
        self.assertEqual(len(calls), 1)


if __name__ == "__main__":
    unittest.main()
