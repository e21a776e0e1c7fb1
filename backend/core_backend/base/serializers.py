from rest_framework import serializers


class BaseModelSerializer(serializers.ModelSerializer):
    """
    Base serializer for the project's models.

    Money and timestamps come from the service layer; subclasses list them in
    read_only_fields rather than re-validating them here.
    """


class FieldsetMixin:
    """
    Mixin that enables dynamic field control via context:
    - Fieldsets (view modes: list, detail)
    - Dynamic field filtering (?fields=id,status)

    Usage:
        class OrderSerializer(FieldsetMixin, BaseModelSerializer):
            class Meta:
                model = Order
                fields = '__all__'
                fieldsets = {
                    'list': ['id', 'order_number', 'status', 'total_amount'],
                    'detail': '__all__',
                }
                # Fields that must always be included
                required_fields = {'id'}
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._apply_fieldset_filtering()
        self._apply_dynamic_field_filtering()

    def _required_fields(self):
        return getattr(self.Meta, 'required_fields', {'id'})

    def _restrict_to(self, allowed):
        for field_name in set(self.fields.keys()) - (set(allowed) | self._required_fields()):
            self.fields.pop(field_name)

    def _apply_fieldset_filtering(self):
        view_mode = self.context.get('view_mode')
        fieldsets = getattr(self.Meta, 'fieldsets', {})
        if view_mode in fieldsets and fieldsets[view_mode] != '__all__':
            self._restrict_to(fieldsets[view_mode])

    def _apply_dynamic_field_filtering(self):
        requested = self.context.get('requested_fields')
        if requested:
            self._restrict_to(requested)
