"""
Reference data provider.

Loads the active catalog (developer types, regions, plot-area brackets,
service categories, services) into an immutable ReferenceData snapshot for
the pricing engine. The raw rows are cached in Redis when available.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from rera_quotes.models import DeveloperType, Region, PlotAreaRange, ServiceCategory, Service
from rera_quotes.services.cache_service import catalog_cache
from rera_quotes.services.pricing_engine import DeveloperTypeRecord, MultiplierRecord, ReferenceData, ServiceRecord
from rera_quotes.utils.number_format import to_decimal

logger = logging.getLogger(__name__)


def _query_catalog(session: Session) -> Dict[str, List[Dict[str, Any]]]:
    """Read active catalog rows as plain dicts (cacheable)."""
    def axis(rows, attr='multiplier'):
        return [{'id': row.id, 'name': row.name, 'multiplier': getattr(row, attr)} for row in rows]

    developer_types = session.query(DeveloperType).filter(DeveloperType.is_active.is_(True)).order_by(DeveloperType.name).all()
    regions = session.query(Region).filter(Region.is_active.is_(True)).order_by(Region.name).all()
    plot_area_ranges = session.query(PlotAreaRange).filter(PlotAreaRange.is_active.is_(True)).order_by(PlotAreaRange.min_area).all()
    categories = session.query(ServiceCategory).filter(ServiceCategory.is_active.is_(True)).order_by(ServiceCategory.name).all()
    services = session.query(Service).filter(Service.is_active.is_(True)).order_by(Service.name).all()

    category_names = {category.id: category.name for category in categories}
    logger.debug(f"[CACHE] Catalog read from database: {len(services)} active services")

    return {
        'developer_types': [
            dict(row, is_agent_registration=bool(dt.is_agent_registration))
            for row, dt in zip(axis(developer_types), developer_types)
        ],
        'regions': axis(regions),
        'plot_area_ranges': axis(plot_area_ranges),
        'service_categories': axis(categories, 'complexity_factor'),
        'services': [
            {
                'id': service.id,
                'name': service.name,
                'category_id': service.category_id,
                'category_name': category_names.get(service.category_id),
                'base_price': service.base_price,
                'is_mandatory': bool(service.is_mandatory),
            }
            for service in services
        ],
    }

def build_reference_data(raw: Dict[str, List[Dict[str, Any]]]) -> ReferenceData:
    """Turn plain catalog dicts into the frozen snapshot."""
    def axis(rows):
        return tuple(
            MultiplierRecord(id=row['id'], name=row['name'], multiplier=to_decimal(row['multiplier']))
            for row in rows
        )

    return ReferenceData(
        developer_types=tuple(
            DeveloperTypeRecord(
                id=row['id'],
                name=row['name'],
                multiplier=to_decimal(row['multiplier']),
                is_agent_registration=bool(row.get('is_agent_registration')),
            )
            for row in raw.get('developer_types', [])
        ),
        regions=axis(raw.get('regions', [])),
        plot_area_ranges=axis(raw.get('plot_area_ranges', [])),
        service_categories=axis(raw.get('service_categories', [])),
        services=tuple(
            ServiceRecord(
                id=row['id'],
                name=row['name'],
                category_id=row.get('category_id'),
                base_price=to_decimal(row['base_price']),
                is_mandatory=bool(row.get('is_mandatory')),
                category_name=row.get('category_name'),
            )
            for row in raw.get('services', [])
        ),
    )

def load_reference_data(session: Session, use_cache: bool = True) -> ReferenceData:
    """Current catalog snapshot, from Redis when cached."""
    if not use_cache:
        return build_reference_data(_query_catalog(session))

    raw = catalog_cache.fetch(lambda: _query_catalog(session))
    return build_reference_data(raw)

def invalidate_reference_data() -> None:
    """Drop the cached snapshot after catalog changes."""
    catalog_cache.invalidate()
