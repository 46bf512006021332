"""
jsonpickle cookie payloads for Python-only deployments.

Keeps type information so Data Models, Pydantic models and datetimes
survive the round trip. Rails cannot read these cookies: use this only when
every reader of the cookie is a Python application sharing the same models.

Requires the ``models`` extra (``pip install rails-cookies[models]``).

Security Note:
    jsonpickle rebuilds arbitrary importable classes. The jar verifies the
    MAC before calling ``load``, so only payloads written with the shared
    ``secret_key_base`` are ever restored.
"""
from typing import Any

try:
    import jsonpickle
    from jsonpickle.unpickler import loadclass
    from datamodel import BaseModel
except ImportError as err:
    raise ImportError(
        "PickleSerializer requires jsonpickle and python-datamodel: "
        "pip install rails-cookies[models]"
    ) from err
from pydantic import BaseModel as PydanticBaseModel

from .exceptions import DeserializeError


class ModelHandler(jsonpickle.handlers.BaseHandler):
    """Data Models are stored as their attribute dict."""

    def flatten(self, obj, data):
        data['attributes'] = self.context.flatten(obj.__dict__, reset=False)
        return data

    def restore(self, obj):
        model = loadclass(obj['py/object'])
        instance = model.__new__(model)
        instance.__dict__ = self.context.restore(obj['attributes'], reset=False)
        return instance


class PydanticHandler(jsonpickle.handlers.BaseHandler):
    """Pydantic models are rebuilt through validation, not __dict__."""

    def flatten(self, obj, data):
        data['fields'] = self.context.flatten(obj.model_dump(), reset=False)
        return data

    def restore(self, obj):
        model = loadclass(obj['py/object'])
        return model.model_validate(self.context.restore(obj['fields'], reset=False))


jsonpickle.handlers.registry.register(BaseModel, ModelHandler, base=True)
jsonpickle.handlers.registry.register(PydanticBaseModel, PydanticHandler, base=True)


class PickleSerializer:
    """jsonpickle cookie serializer. Not readable by Rails."""

    def dump(self, value: Any) -> bytes:
        try:
            return jsonpickle.encode(value).encode("utf-8")
        except Exception as err:
            raise TypeError(f"Cannot encode cookie payload: {err}") from err

    def load(self, data: bytes) -> Any:
        try:
            return jsonpickle.decode(data.decode("utf-8"))
        except Exception as err:
            raise DeserializeError(f"Invalid jsonpickle payload: {err}") from err
