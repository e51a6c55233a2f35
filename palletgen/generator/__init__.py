"""Palletgen binding generator."""

from .decoder import decode_literal as decode_literal
from .errors import *
from .pallet import Constant as Constant
from .pallet import Pallet as Pallet
from .pallet import Query as Query
from .pallet import assemble as assemble
from .parser import load as load
from .parser import parse as parse
from .parser import parse_type_expression as parse_type_expression
from .registry import TypeDescriptor as TypeDescriptor
from .registry import TypeRegistry as TypeRegistry
from .storage import Storage as Storage
from .storage import StorageHasher as StorageHasher
from .storage import hasher_from_token as hasher_from_token
