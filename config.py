"""Configuration settings for Prime Payroll"""
import os

# Company Information
COMPANY_NAME = "Prime Communications"

# Default team-lead profit share (percent of team margin)
DEFAULT_PROFIT_SHARE = 50

# Task code whose category rate is added on top of the standard rate
# when a job is flagged as an aerial drop
AERIAL_DROP_TASK_CODE = "AERIAL DROP"

# Where the local payroll store keeps its state file
DATA_DIR = os.environ.get('PAYROLL_DATA_DIR', 'data')

# Upload column aliases (normalized header -> field)
UPLOAD_COLUMNS = {
    'tech id': 'technician_id',
    'techid': 'technician_id',
    'technician id': 'technician_id',
    'tech name': 'technician_name',
    'technician': 'technician_name',
    'technician name': 'technician_name',
    'work order': 'work_order',
    'wo': 'work_order',
    'task code': 'task_code',
    'task': 'task_code',
    'wo task': 'combo',
    'work order task': 'combo',
    'qty': 'quantity',
    'quantity': 'quantity',
    'revenue': 'revenue',
    'total': 'revenue',
    'revenue per': 'revenue_per_unit',
    'rate': 'revenue_per_unit',
    'date': 'date',
}

DATE_FORMATS = ['%Y-%m-%d', '%m/%d/%Y', '%Y%m%d', '%d/%m/%Y']

# Excel styling
EXCEL_STYLES = {
    'header_bg_color': 'D3D3D3',  # Light gray
    'summary_bg_color': '00FFFF',  # Cyan
    'font_name': 'Arial',
    'font_size': 10
}
