"""Models package - exports all SQLAlchemy models."""
from rera_quotes.models.app_user import AppUser, UserRole

# Reference data
from rera_quotes.models.developer_type import DeveloperType
from rera_quotes.models.region import Region
from rera_quotes.models.plot_area_range import PlotAreaRange
from rera_quotes.models.service_category import ServiceCategory
from rera_quotes.models.service import Service

# Quotations
from rera_quotes.models.quotation_approval import QuotationApproval, ApprovalDecision, ApprovalLevel
from rera_quotes.models.quotation import Quotation, QuotationStatus
from rera_quotes.models.quotation_service_line import QuotationServiceLine

__all__ = [
    'AppUser', 'UserRole',
    'DeveloperType', 'Region', 'PlotAreaRange', 'ServiceCategory', 'Service',
    'Quotation', 'QuotationStatus', 'QuotationServiceLine',
    'QuotationApproval', 'ApprovalDecision', 'ApprovalLevel',
]
