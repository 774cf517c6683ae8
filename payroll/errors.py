"""Exceptions raised by the payroll engine"""


class PayrollError(Exception):
    """Base class for payroll engine errors"""


class PreconditionError(PayrollError):
    """An operation was refused because its precondition does not hold"""
