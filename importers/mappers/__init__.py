"""
Entity mappers registry.
"""

from typing import Optional

from exceptions import UnknownEntityTypeError
from importers.mappers.base import (
    EntityMapper,
    Heuristic,
    MappedRecord,
    MapperContext,
    TargetField,
    SKIP_FIELD,
)
from importers.mappers.customer import CompanyCustomerMapper, PersonCustomerMapper, MappedCustomer
from importers.mappers.invoice import InvoiceMapper, MappedInvoice
from importers.mappers.order import OrderMapper, MappedOrder
from importers.mappers.performance import PerformanceMapper, MappedPerformance
from importers.mappers.game import GameMapper, MappedGame


MAPPERS: dict[str, type[EntityMapper]] = {
    mapper.entity_type: mapper
    for mapper in (
        CompanyCustomerMapper,
        PersonCustomerMapper,
        InvoiceMapper,
        OrderMapper,
        PerformanceMapper,
        GameMapper,
    )
}


def entity_types() -> list[str]:
    return list(MAPPERS)


def get_mapper(entity_type: str, context: Optional[MapperContext] = None) -> EntityMapper:
    """
    Get the mapper for an entity type.

    Raises:
        UnknownEntityTypeError: If no mapper is registered for the type
    """
    mapper_class = MAPPERS.get(entity_type)
    if mapper_class is None:
        raise UnknownEntityTypeError(entity_type, entity_types())
    return mapper_class(context)


__all__ = [
    "EntityMapper",
    "Heuristic",
    "MappedRecord",
    "MapperContext",
    "TargetField",
    "SKIP_FIELD",
    "CompanyCustomerMapper",
    "PersonCustomerMapper",
    "InvoiceMapper",
    "OrderMapper",
    "PerformanceMapper",
    "GameMapper",
    "MappedCustomer",
    "MappedInvoice",
    "MappedOrder",
    "MappedPerformance",
    "MappedGame",
    "MAPPERS",
    "entity_types",
    "get_mapper",
]
