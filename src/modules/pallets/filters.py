import django_filters

from modules.pallets.models import Pallet


class PalletFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    pickup_zone = django_filters.UUIDFilter(field_name="pickup_zone_id")
    delivery_zone = django_filters.UUIDFilter(field_name="delivery_zone_id")
    notified = django_filters.BooleanFilter(
        field_name="completion_notified_at", lookup_expr="isnull", exclude=True
    )

    class Meta:
        model = Pallet
        fields = ["status", "pickup_zone", "delivery_zone", "notified"]
