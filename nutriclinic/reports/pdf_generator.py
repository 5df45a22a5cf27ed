# -*- coding: utf-8 -*-
"""
PDF report generator

Payment receipts and meal-plan handouts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..config import settings

PRIMARY = colors.HexColor('#2980b9')


def format_brl(value: Any) -> str:
    """``1234.5`` -> ``R$ 1.234,50``."""
    try:
        amount = float(value or 0)
    except (TypeError, ValueError):
        amount = 0.0
    text = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{'-' if amount < 0 else ''}R$ {text}"


def _format_date(value: Optional[str]) -> str:
    if not value:
        return date.today().strftime("%d/%m/%Y")
    try:
        return date.fromisoformat(str(value)[:10]).strftime("%d/%m/%Y")
    except ValueError:
        return str(value)


@dataclass
class ReceiptData:
    """Payment receipt contents"""
    transaction_id: str
    amount: float
    description: str
    transaction_date: Optional[str]
    patient_name: str
    provider_name: str
    provider_email: Optional[str] = None
    provider_phone: Optional[str] = None


@dataclass
class MealPlanReport:
    """Meal plan handout contents"""
    plan_name: str
    patient_name: str
    nutritionist_name: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    description: Optional[str] = None
    meals: List[Dict[str, Any]] = field(default_factory=list)
    daily_totals: Dict[str, float] = field(default_factory=dict)
    generated_at: datetime = field(default_factory=datetime.now)


class PDFReportGenerator:
    """PDF report generator"""

    def __init__(self, font_name: str = 'Helvetica'):
        self.font = font_name
        self._setup_styles()

    def _setup_styles(self) -> None:
        self.styles = getSampleStyleSheet()
        self.styles.add(ParagraphStyle(
            name='DocTitle',
            fontName=f'{self.font}-Bold',
            fontSize=18,
            leading=24,
            alignment=1,
            spaceAfter=6,
            textColor=PRIMARY,
        ))
        self.styles.add(ParagraphStyle(
            name='DocHeading',
            fontName=f'{self.font}-Bold',
            fontSize=12,
            leading=16,
            spaceBefore=10,
            spaceAfter=4,
            textColor=colors.HexColor('#2c3e50'),
        ))
        self.styles.add(ParagraphStyle(
            name='DocBody',
            fontName=self.font,
            fontSize=10,
            leading=14,
            spaceBefore=2,
            spaceAfter=2,
        ))
        self.styles.add(ParagraphStyle(
            name='DocSmall',
            fontName=self.font,
            fontSize=8,
            leading=10,
            alignment=1,
            textColor=colors.grey,
        ))

    def _build(self, story: List) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=2*cm,
            leftMargin=2*cm,
            topMargin=2*cm,
            bottomMargin=2*cm,
        )
        doc.build(story)
        content = buffer.getvalue()
        buffer.close()
        return content

    def generate_receipt(self, receipt: ReceiptData) -> bytes:
        story = [
            Paragraph("RECIBO", self.styles['DocTitle']),
            Paragraph(f"Gerado por {escape(settings.app_name)}", self.styles['DocSmall']),
            Spacer(1, 12),
            Paragraph("PRESTADOR DE SERVIÇOS", self.styles['DocHeading']),
            HRFlowable(width="100%", thickness=1, color=colors.grey),
            Paragraph(f"Nome: {escape(receipt.provider_name)}", self.styles['DocBody']),
        ]
        if receipt.provider_phone:
            story.append(Paragraph(f"Telefone: {escape(receipt.provider_phone)}", self.styles['DocBody']))
        if receipt.provider_email:
            story.append(Paragraph(f"E-mail: {escape(receipt.provider_email)}", self.styles['DocBody']))

        text = (
            f"Recebi de {escape(receipt.patient_name or 'Paciente')} a importância de "
            f"{format_brl(receipt.amount)} referente a "
            f"{escape(receipt.description or 'Serviço de nutrição')}."
        )
        story.extend([
            Spacer(1, 12),
            Paragraph("RECIBO DE PAGAMENTO", self.styles['DocHeading']),
            HRFlowable(width="100%", thickness=1, color=colors.grey),
            Paragraph(text, self.styles['DocBody']),
            Spacer(1, 8),
            Paragraph(f"Data: {_format_date(receipt.transaction_date)}", self.styles['DocBody']),
            Spacer(1, 36),
            HRFlowable(width="60%", thickness=0.5, color=colors.grey),
            Paragraph("Assinatura do Prestador de Serviços", self.styles['DocSmall']),
            Spacer(1, 24),
            Paragraph(f"Recibo nº {escape(receipt.transaction_id)}", self.styles['DocSmall']),
        ])
        return self._build(story)

    def generate_meal_plan(self, report: MealPlanReport) -> bytes:
        story = [
            Paragraph(escape(report.plan_name), self.styles['DocTitle']),
            Spacer(1, 6),
        ]

        info = [
            ["Paciente", report.patient_name, "Nutricionista", report.nutritionist_name],
            ["Início", _format_date(report.start_date), "Fim", _format_date(report.end_date) if report.end_date else "-"],
        ]
        table = Table(info, colWidths=[3*cm, 5*cm, 3*cm, 5*cm])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, -1), self.font),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TEXTCOLOR', (0, 0), (0, -1), colors.grey),
            ('TEXTCOLOR', (2, 0), (2, -1), colors.grey),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        story.append(table)
        if report.description:
            story.append(Paragraph(escape(report.description), self.styles['DocBody']))

        for meal in report.meals:
            title = meal.get("name") or meal.get("meal_type") or "Refeição"
            if meal.get("meal_time"):
                title = f"{title} ({meal['meal_time']})"
            story.append(Paragraph(escape(title), self.styles['DocHeading']))
            story.append(HRFlowable(width="100%", thickness=1, color=colors.grey))

            rows = [["Alimento", "Quantidade", "kcal", "P (g)", "C (g)", "G (g)"]]
            for food in meal.get("foods") or []:
                rows.append([
                    food.get("name") or "",
                    f"{food.get('quantity') or 0:g} {food.get('unit') or ''}".strip(),
                    f"{float(food.get('calories') or 0):.0f}",
                    f"{float(food.get('protein') or 0):.1f}",
                    f"{float(food.get('carbs') or 0):.1f}",
                    f"{float(food.get('fat') or 0):.1f}",
                ])
            rows.append([
                "Total", "",
                f"{float(meal.get('total_calories') or 0):.0f}",
                f"{float(meal.get('total_protein') or 0):.1f}",
                f"{float(meal.get('total_carbs') or 0):.1f}",
                f"{float(meal.get('total_fat') or 0):.1f}",
            ])
            table = Table(rows, colWidths=[6*cm, 3*cm, 2*cm, 2*cm, 2*cm, 2*cm])
            table.setStyle(TableStyle([
                ('FONTNAME', (0, 0), (-1, -1), self.font),
                ('FONTSIZE', (0, 0), (-1, -1), 9),
                ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#ecf0f1')),
                ('FONTNAME', (0, -1), (-1, -1), f'{self.font}-Bold'),
                ('ALIGN', (1, 0), (-1, -1), 'CENTER'),
                ('GRID', (0, 0), (-1, -1), 0.5, colors.lightgrey),
                ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
                ('TOPPADDING', (0, 0), (-1, -1), 4),
            ]))
            story.append(table)

        totals = report.daily_totals
        story.extend([
            Spacer(1, 12),
            Paragraph("Total diário", self.styles['DocHeading']),
            Paragraph(
                f"{float(totals.get('daily_calories') or 0):.0f} kcal · "
                f"proteínas {float(totals.get('daily_protein') or 0):.1f} g · "
                f"carboidratos {float(totals.get('daily_carbs') or 0):.1f} g · "
                f"gorduras {float(totals.get('daily_fat') or 0):.1f} g",
                self.styles['DocBody'],
            ),
            Spacer(1, 24),
            Paragraph(
                f"Gerado em {report.generated_at.strftime('%d/%m/%Y %H:%M')} por {escape(settings.app_name)}",
                self.styles['DocSmall'],
            ),
        ])
        return self._build(story)
