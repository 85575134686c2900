"""
Payroll Kernel

Domain core for payroll summarization and deduction reconciliation:
- Typed, code-carrying exceptions
- Structured JSON logging with request-scoped context
- Injectable clock
- Immutable value objects for day records, deduction sources and summaries
- Deterministic payroll ids
"""

__version__ = "0.1.0"
