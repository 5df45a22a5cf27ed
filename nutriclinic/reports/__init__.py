# -*- coding: utf-8 -*-
"""
Report generation module
"""

from .pdf_generator import MealPlanReport, PDFReportGenerator, ReceiptData, format_brl

__all__ = [
    'MealPlanReport',
    'PDFReportGenerator',
    'ReceiptData',
    'format_brl',
]
