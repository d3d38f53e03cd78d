from enum import Enum


class ObjectKind(str, Enum):
    PRIMARY_KEY = "primary_key"
    INDEX = "index"
    UNIQUE_CONSTRAINT = "unique_constraint"
