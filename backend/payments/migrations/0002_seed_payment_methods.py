from django.db import migrations

DEFAULT_PAYMENT_METHODS = [
    # name, display_name, requires_card_info, requires_card_present
    ("CASH", "Cash", False, False),
    ("CARD", "Credit/Debit Card", True, True),
    ("UPI", "UPI", False, False),
    ("COMPLEMENTARY", "Complementary", False, False),
]


def seed_payment_methods(apps, schema_editor):
    PaymentMethod = apps.get_model("payments", "PaymentMethod")
    for name, display_name, requires_card_info, requires_card_present in DEFAULT_PAYMENT_METHODS:
        PaymentMethod.objects.get_or_create(
            name=name,
            defaults={
                "display_name": display_name,
                "requires_card_info": requires_card_info,
                "requires_card_present": requires_card_present,
            },
        )


class Migration(migrations.Migration):

    dependencies = [
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_payment_methods, migrations.RunPython.noop),
    ]
