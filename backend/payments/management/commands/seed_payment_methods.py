from django.core.management.base import BaseCommand
from django.db import transaction

from payments.models import DEFAULT_PAYMENT_METHODS, PaymentMethod


class Command(BaseCommand):
    help = 'Create the default payment methods (Cash, Card, UPI, Complementary)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--reactivate',
            action='store_true',
            help='Mark existing default methods active again',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        created_count = 0
        reactivated_count = 0

        for name, display_name, requires_card_info, requires_card_present in DEFAULT_PAYMENT_METHODS:
            method, created = PaymentMethod.objects.get_or_create(
                name=name,
                defaults={
                    'display_name': display_name,
                    'requires_card_info': requires_card_info,
                    'requires_card_present': requires_card_present,
                },
            )
            if created:
                created_count += 1
                self.stdout.write(f'Created: {display_name}')
            elif options['reactivate'] and not method.is_active:
                method.is_active = True
                method.save(update_fields=['is_active'])
                reactivated_count += 1
                self.stdout.write(f'Reactivated: {display_name}')

        self.stdout.write(
            self.style.SUCCESS(
                f'Payment methods ready: {created_count} created, {reactivated_count} reactivated'
            )
        )
