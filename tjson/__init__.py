"""基于类型描述符的格式化文本序列化库.

提供了JsonStruct定义、序列化(dumps)和反序列化(loads)功能.
"""

from .adapter import JsonTypeAdapter
from .api import dump, dumps, dumps_members, load, loads, loads_members
from .config import DEFAULT_MAX_DEPTH, JsonConfig
from .descriptors import (
    EnumDescriptor,
    FieldDescriptor,
    RecordDescriptor,
    get_enum_descriptor,
    get_record_descriptor,
    register_enum,
    register_record,
)
from .exceptions import (
    JsonSyntaxError,
    NestingDepthError,
    TJsonDecodeError,
    TJsonEncodeError,
    TJsonError,
    TJsonTypeError,
    TJsonValueError,
    TypeMismatch,
    UnexpectedEndOfInput,
    UnknownEnumName,
    UnknownEnumValue,
    UnknownKeyError,
)
from .options import JsonOption
from .serializer import Deserializer, Member, Serializer, vmember
from .struct import JsonCodec, JsonField, JsonStruct
from .types import (
    BOOL,
    DOUBLE,
    FLOAT,
    INT8,
    INT16,
    INT32,
    INT64,
    STRING,
    UINT8,
    UINT16,
    UINT32,
    UINT64,
    JsonType,
    PrimitiveKind,
)

__version__ = "0.1.0"

__all__ = [
    "BOOL",
    "DEFAULT_MAX_DEPTH",
    "DOUBLE",
    "FLOAT",
    "INT8",
    "INT16",
    "INT32",
    "INT64",
    "STRING",
    "UINT8",
    "UINT16",
    "UINT32",
    "UINT64",
    "Deserializer",
    "EnumDescriptor",
    "FieldDescriptor",
    "JsonCodec",
    "JsonConfig",
    "JsonField",
    "JsonOption",
    "JsonStruct",
    "JsonSyntaxError",
    "JsonType",
    "JsonTypeAdapter",
    "Member",
    "NestingDepthError",
    "PrimitiveKind",
    "RecordDescriptor",
    "Serializer",
    "TJsonDecodeError",
    "TJsonEncodeError",
    "TJsonError",
    "TJsonTypeError",
    "TJsonValueError",
    "TypeMismatch",
    "UnexpectedEndOfInput",
    "UnknownEnumName",
    "UnknownEnumValue",
    "UnknownKeyError",
    "__version__",
    "dump",
    "dumps",
    "dumps_members",
    "get_enum_descriptor",
    "get_record_descriptor",
    "load",
    "loads",
    "loads_members",
    "register_enum",
    "register_record",
    "vmember",
]
