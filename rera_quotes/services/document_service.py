"""Quotation document rendering (PDF) with ReportLab."""

from datetime import datetime
from io import BytesIO
from typing import Any, Dict

from markupsafe import escape
from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from rera_quotes.models import Quotation
from rera_quotes.utils.formatters import money_in, percent, date_in, approval_level_label

# Core PDF fonts have no rupee glyph
CURRENCY = 'Rs. '


def _money(value) -> str:
    return money_in(value, symbol=CURRENCY)


def _text(value) -> str:
    return str(escape(value if value is not None else '-'))


def render_quotation_pdf(quotation: Quotation, business_info: Dict[str, Any]) -> BytesIO:
    """
    Render a fully hydrated quotation (header, service lines, totals and
    approval history) into a PDF buffer.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=f"Quotation {quotation.quotation_number}",
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'QuotationTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.HexColor('#1E3A8A'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )
    header_style = ParagraphStyle(
        'QuotationHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#6B7280'),
        alignment=TA_CENTER,
        spaceAfter=6
    )
    section_style = ParagraphStyle(
        'QuotationSection',
        parent=styles['Heading3'],
        textColor=colors.HexColor('#1E3A8A'),
        spaceBefore=6,
        spaceAfter=6,
    )
    cell_style = ParagraphStyle('QuotationCell', parent=styles['Normal'], fontSize=9, leading=11)

    # 1. Business header
    elements.append(Paragraph("QUOTATION", title_style))
    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{_text(business_info['name'])}</b>", header_style))
    if business_info.get('address'):
        elements.append(Paragraph(_text(business_info['address']), header_style))

    contact_parts = []
    if business_info.get('phone'):
        contact_parts.append(f"Tel: {_text(business_info['phone'])}")
    if business_info.get('email'):
        contact_parts.append(f"Email: {_text(business_info['email'])}")
    if contact_parts:
        elements.append(Paragraph(" | ".join(contact_parts), header_style))

    elements.append(Spacer(1, 0.3*inch))

    # 2. Quotation and project metadata
    info_rows = [
        ['Quotation No:', quotation.quotation_number],
        ['Date:', date_in(quotation.created_at or datetime.now())],
        ['Valid Until:', date_in(quotation.valid_until)],
        ['Status:', quotation.status.value.replace('_', ' ').title()],
        ['Developer:', quotation.developer_name],
        ['Developer Type:', quotation.developer_type.name if quotation.developer_type else '-'],
    ]
    if quotation.project_name:
        info_rows.append(['Project:', quotation.project_name])
    if quotation.project_location:
        info_rows.append(['Location:', quotation.project_location])
    if quotation.region:
        info_rows.append(['Region:', quotation.region.name])
    if quotation.plot_area is not None:
        info_rows.append(['Plot Area:', f"{quotation.plot_area} sq ft"])
    elif quotation.plot_area_range:
        info_rows.append(['Plot Area:', quotation.plot_area_range.name])
    if quotation.is_agent_registration:
        info_rows.append(['Agent Type:', (quotation.agent_type or '-').replace('_', ' ').upper()])
        info_rows.append(['Mobile:', quotation.mobile_number])
        info_rows.append(['Email:', quotation.email])
    if quotation.rera_number:
        info_rows.append(['RERA No:', quotation.rera_number])
    if quotation.payment_schedule:
        info_rows.append(['Payment:', quotation.payment_schedule])

    info_table = Table(
        [[label, Paragraph(_text(value), cell_style)] for label, value in info_rows],
        colWidths=[1.6*inch, 4.4*inch],
    )
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#374151')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # 3. Services
    elements.append(Paragraph("Services", section_style))
    table_data = [['Service', 'Category', 'Price', 'Discount', 'Final Price']]
    for line in quotation.lines:
        discount = percent(line.discount_percentage) if line.discount_amount else '-'
        table_data.append([
            Paragraph(_text(line.service_name_snapshot), cell_style),
            Paragraph(_text(line.category_name_snapshot), cell_style),
            _money(line.original_price),
            discount,
            _money(line.final_price),
        ])

    items_table = Table(table_data, colWidths=[2.4*inch, 1.4*inch, 1*inch, 0.8*inch, 1*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#2563EB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
        ('ALIGN', (2, 1), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#D1D5DB')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#F3F4F6')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Totals
    totals_rows = [['Subtotal:', _money(quotation.original_amount)]]
    if quotation.total_discount_amount:
        totals_rows.append([
            f"Discount ({percent(quotation.total_discount_percentage)}):",
            f"-{_money(quotation.total_discount_amount)}",
        ])
    totals_rows.append(['TOTAL:', _money(quotation.rounded_total)])

    totals_table = Table(totals_rows, colWidths=[5.6*inch, 1*inch])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -2), 10),
        ('FONTSIZE', (0, -1), (-1, -1), 13),
        ('TEXTCOLOR', (0, -1), (-1, -1), colors.HexColor('#047857')),
        ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#ECFDF5')),
        ('BOX', (0, -1), (-1, -1), 1.5, colors.HexColor('#047857')),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 0.3*inch))

    # 5. Approval history
    if quotation.approvals:
        elements.append(Paragraph("Approval History", section_style))
        history = [['Date', 'Decision', 'By', 'Level Required', 'Comments']]
        for approval in quotation.approvals:
            approver = approval.approver.display_name if approval.approver else '-'
            history.append([
                date_in(approval.approval_date),
                approval.approval_status.value.title(),
                Paragraph(_text(approver), cell_style),
                approval_level_label(approval.approval_level_required),
                Paragraph(_text(approval.comments), cell_style),
            ])
        history_table = Table(history, colWidths=[0.9*inch, 0.8*inch, 1.4*inch, 1.8*inch, 1.7*inch])
        history_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#E5E7EB')),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#D1D5DB')),
        ]))
        elements.append(history_table)
        elements.append(Spacer(1, 0.3*inch))

    footer_style = ParagraphStyle('Footer', parent=styles['Normal'], fontSize=9, textColor=colors.HexColor('#9CA3AF'), alignment=TA_CENTER)
    footer_text = (
        f"<b>TERMS:</b><br/>This quotation is valid for {quotation.validity_days} days from the date of issue.<br/>"
        "Government fees, if any, are charged at actuals."
    )
    if quotation.notes:
        footer_text += f"<br/><br/><b>Notes:</b> {_text(quotation.notes)}"
    elements.append(Paragraph(footer_text, footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def business_info_from_config(config) -> Dict[str, Any]:
    return {
        'name': config.get('BUSINESS_NAME'),
        'address': config.get('BUSINESS_ADDRESS'),
        'phone': config.get('BUSINESS_PHONE'),
        'email': config.get('BUSINESS_EMAIL'),
    }
