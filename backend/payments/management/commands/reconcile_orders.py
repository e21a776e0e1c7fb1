from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from core_backend.exceptions import ReconciliationError
from orders.models import Order
from orders.services import OrderCalculationService, OrderCompletionService, OrderService
from payments.ledger import PaymentLedger
from settings.config import resolve_policy


class Command(BaseCommand):
    help = (
        "Re-derive discount, tip, roundoff and totals from the payment ledger for "
        "open orders and complete any that are already fully paid"
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report what would change without writing anything",
        )
        parser.add_argument(
            "--order",
            dest="order_id",
            help="Reconcile a single order by id",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        policy = resolve_policy()

        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE - No changes will be made"))

        if options["order_id"]:
            try:
                orders = [OrderService.get_order(options["order_id"])]
            except ReconciliationError as exc:
                raise CommandError(exc.message)
        else:
            orders = Order.objects.exclude(status__in=Order.TERMINAL_STATUSES).order_by("created_at")

        checked = 0
        completed = 0
        for order in orders:
            checked += 1
            if order.is_terminal:
                self.stdout.write(f"{order.order_number}: {order.get_status_display()}, skipped")
                continue

            if dry_run:
                sums = PaymentLedger(order).sums()
                decision = OrderCompletionService.evaluate(order.total_amount, sums, policy)
                if decision.completable:
                    completed += 1
                    self.stdout.write(
                        f"{order.order_number}: would complete ({decision.reason}, "
                        f"paid {decision.eligible_sum} of {order.total_amount})"
                    )
                continue

            result = self._reconcile(order.pk, policy)
            if result.changed:
                completed += 1
                self.stdout.write(self.style.SUCCESS(f"{order.order_number}: completed ({result.decision.reason})"))

        verb = "would be completed" if dry_run else "completed"
        self.stdout.write(self.style.SUCCESS(f"Checked {checked} order(s); {completed} {verb}"))

    @staticmethod
    def _reconcile(order_id, policy):
        with transaction.atomic():
            order = OrderService.lock_order(order_id)
            sums = OrderCalculationService.refresh_from_ledger(order, policy)
            return OrderCompletionService.try_complete(order, policy, sums)
