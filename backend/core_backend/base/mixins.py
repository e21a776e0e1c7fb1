class FieldsetQueryParamsMixin:
    """
    Parses standard query params and injects them into serializer context.

    Supported params:
    - ?view=list|detail (selects fieldset)
    - ?fields=id,status,total_amount (ad-hoc field filtering)

    Pairs with serializers that use FieldsetMixin.
    """

    def get_serializer_context(self):
        context = super().get_serializer_context()
        request = getattr(self, 'request', None)
        if request is None:
            return context

        view_mode = request.query_params.get('view', self._get_default_view_mode())
        fields_param = request.query_params.get('fields', '')
        requested_fields = [f.strip() for f in fields_param.split(',') if f.strip()]

        context.update({
            'view_mode': view_mode,
            'requested_fields': requested_fields or None,
        })
        return context

    def _get_default_view_mode(self):
        """Lists get the compact fieldset; everything else the full one."""
        if getattr(self, 'action', None) == 'list':
            return 'list'
        return 'detail'
