import django_filters
from django.db.models import Q

from .models import Customer


class CustomerFilter(django_filters.FilterSet):
    """Exact status/source/industry plus a name keyword (company or contact)."""
    keyword = django_filters.CharFilter(method="filter_keyword")

    class Meta:
        model = Customer
        fields = {
            "status": ["exact"],
            "source": ["exact"],
            "industry": ["exact"],
        }

    def filter_keyword(self, queryset, name, value):
        return queryset.filter(Q(company_name__icontains=value) | Q(contact_name__icontains=value))
