# Overview: Persistence collaborator used by the checkout core; wraps db.session.

"""
SQLAlchemy repository

Every storage call the core makes goes through SqlAlchemyRepository so that:
- each write is one transaction (commit or full rollback)
- transient database errors are retried (run_with_retry)
- anything the database still refuses surfaces as PersistenceFailure,
  never as a raw SQLAlchemy exception
- the single-OPEN-session rule is enforced by the database's unique
  index, and a losing insert is reported as AlreadyOpen
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import AlreadyOpen, NotFound, PersistenceFailure, PosError, RegisterClosed
from .extensions import db
from .models import CashRegisterSession, Customer, Product, Sale, SessionStatus, User
from .services.concurrency import lock_for_update, run_with_retry


class SqlAlchemyRepository:

    def _read(self, func, description: str):
        try:
            return func()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.warning("Persistence failure while %s: %s", description, exc)
            raise PersistenceFailure(f"Could not {description}") from exc
        except Exception:
            db.session.rollback()
            raise

    def _write(self, func, description: str):
        try:
            return run_with_retry(func)
        except PosError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.warning("Persistence failure while %s: %s", description, exc)
            raise PersistenceFailure(f"Could not {description}") from exc
        except Exception:
            db.session.rollback()
            raise

    def _merge(self, obj):
        def _op():
            merged = db.session.merge(obj)
            db.session.commit()
            return merged
        return _op

    # -------------------------------------------------------------------------
    # PRODUCTS
    # -------------------------------------------------------------------------

    def list_products(self, active_only: bool = False) -> list[Product]:
        def _op():
            query = db.session.query(Product)
            if active_only:
                query = query.filter(Product.is_active.is_(True))
            return query.order_by(Product.category.asc(), Product.name.asc(), Product.id.asc()).all()
        return self._read(_op, "list products")

    def get_product(self, product_id: str) -> Product | None:
        return self._read(lambda: db.session.get(Product, product_id), "load product")

    def upsert_product(self, product: Product) -> Product:
        return self._write(self._merge(product), "save product")

    def delete_product(self, product_id: str) -> bool:
        def _op():
            deleted = db.session.query(Product).filter_by(id=product_id).delete()
            db.session.commit()
            return deleted > 0
        return self._write(_op, "delete product")

    # -------------------------------------------------------------------------
    # USERS
    # -------------------------------------------------------------------------

    def list_users(self) -> list[User]:
        return self._read(lambda: db.session.query(User).order_by(User.username.asc()).all(), "list users")

    def get_user(self, user_id: str) -> User | None:
        return self._read(lambda: db.session.get(User, user_id), "load user")

    def get_user_by_username(self, username: str) -> User | None:
        return self._read(lambda: db.session.query(User).filter_by(username=username).first(), "load user")

    def upsert_user(self, user: User) -> User:
        return self._write(self._merge(user), "save user")

    def delete_user(self, user_id: str) -> bool:
        def _op():
            user = db.session.get(User, user_id)
            if user is None:
                return False
            db.session.delete(user)
            db.session.commit()
            return True
        return self._write(_op, "delete user")

    # -------------------------------------------------------------------------
    # CUSTOMERS
    # -------------------------------------------------------------------------

    def list_customers(self) -> list[Customer]:
        return self._read(lambda: db.session.query(Customer).order_by(Customer.name.asc()).all(), "list customers")

    def get_customer(self, customer_id: str) -> Customer | None:
        return self._read(lambda: db.session.get(Customer, customer_id), "load customer")

    def upsert_customer(self, customer: Customer) -> Customer:
        return self._write(self._merge(customer), "save customer")

    # -------------------------------------------------------------------------
    # REGISTER SESSIONS & SALES
    # -------------------------------------------------------------------------

    def get_open_session(self) -> CashRegisterSession | None:
        return self._read(
            lambda: db.session.query(CashRegisterSession).filter_by(status=SessionStatus.OPEN).first(),
            "load open register session",
        )

    def insert_session(self, session: CashRegisterSession) -> CashRegisterSession:
        """
        Persist a brand-new session.

        A unique-index violation on the OPEN status means another terminal
        opened a session first; that is reported as AlreadyOpen.
        """
        def _op():
            db.session.add(session)
            db.session.commit()
            return session

        try:
            return self._write(_op, "open register session")
        except PersistenceFailure as exc:
            if isinstance(exc.__cause__, IntegrityError) and self.get_open_session() is not None:
                raise AlreadyOpen("A register session is already open") from exc.__cause__
            raise

    def close_session(self, session_id: str, finalize) -> CashRegisterSession:
        """
        Lock the session row, re-check that it is OPEN and apply `finalize`
        to the locked row before committing.

        The sales relationship is reloaded under the lock, so a sale that
        committed after the caller loaded the session is still reconciled.
        """
        def _op():
            session = lock_for_update(
                db.session.query(CashRegisterSession).filter_by(id=session_id)
            ).populate_existing().first()
            if session is None:
                raise NotFound("Register session not found", details={"session_id": session_id})
            if not session.is_open:
                raise RegisterClosed("Register session is closed", details={"session_id": session_id})

            db.session.expire(session, ["sales"])
            finalize(session)
            db.session.commit()
            return session

        return self._write(_op, "close register session")

    def insert_sale(self, sale: Sale, session_id: str) -> Sale:
        """
        Persist a sale header with its lines and payments in one transaction.

        The owning session row is locked and must still be OPEN; a session
        closed in the meantime rejects the sale with RegisterClosed.
        """
        def _op():
            session = lock_for_update(
                db.session.query(CashRegisterSession).filter_by(id=session_id)
            ).first()
            if session is None:
                raise NotFound("Register session not found", details={"session_id": session_id})
            if not session.is_open:
                raise RegisterClosed("Register session is closed", details={"session_id": session_id})

            sale.session_id = session_id
            db.session.add(sale)
            db.session.commit()
            return sale

        return self._write(_op, "record sale")

    def list_session_history(self) -> list[CashRegisterSession]:
        """All sessions, newest first, with sales (and their lines/payments) loaded."""
        return self._read(
            lambda: db.session.query(CashRegisterSession)
            .order_by(CashRegisterSession.opened_at.desc())
            .all(),
            "load register history",
        )
