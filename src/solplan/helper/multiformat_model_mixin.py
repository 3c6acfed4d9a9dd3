from solplan.helper.multiformat_deserializable_mixin import MultiformatDeserializableMixin
from solplan.helper.multiformat_serializable_mixin import MultiformatSerializableMixin


class MultiformatModelMixin(MultiformatSerializableMixin, MultiformatDeserializableMixin):
    pass
