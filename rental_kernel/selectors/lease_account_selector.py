"""Lease account queries."""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select

from rental_kernel.exceptions import LeaseAccountNotFoundError
from rental_kernel.models.lease_account import LeaseAccount, LeaseAccountStatus
from rental_kernel.selectors.base import BaseSelector


class LeaseAccountSelector(BaseSelector[LeaseAccount]):

    def get_for_update(self, lease_account_id: UUID) -> LeaseAccount:
        """
        Re-read a lease account under a row lock.

        ``populate_existing`` overwrites any identity-map copy with the
        database state, so ``advance_rent_used`` read afterwards is the
        committed value plus this transaction's flushed changes.  The lock
        (PostgreSQL) is held until the caller's transaction ends.

        Raises:
            LeaseAccountNotFoundError: If no row has this id.
        """
        lease_account = self.session.execute(
            select(LeaseAccount)
            .where(LeaseAccount.id == lease_account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if lease_account is None:
            raise LeaseAccountNotFoundError(str(lease_account_id))
        return lease_account

    def active_for_landlord(self, landlord_id: UUID) -> Sequence[LeaseAccount]:
        """Active lease accounts of a landlord, ordered by unit number then id."""
        return self.session.execute(
            select(LeaseAccount)
            .where(LeaseAccount.landlord_id == landlord_id)
            .where(LeaseAccount.status == LeaseAccountStatus.ACTIVE.value)
            .order_by(LeaseAccount.unit_number, LeaseAccount.id)
        ).scalars().all()
