"""Salary and income-tax breakdown engine for Indian salaried taxpayers."""
