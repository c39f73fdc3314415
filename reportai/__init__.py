"""
ReportAI - AI驱动的商业报表生成后端
"""
__version__ = "1.0.0"
