"""
GST split

Tax on a supply inside the seller's state is charged as CGST and SGST, half
each. Tax on a supply to another state is charged as IGST.
"""
from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

TWO_PLACES = Decimal('0.01')

GSTSplit = namedtuple('GSTSplit', ['cgst', 'sgst', 'igst'])


def state_code_for(state_code='', gstin=''):
    """
    GST state code of a party: the explicit code, else the first two digits
    of its GSTIN. Blank when neither is known.
    """
    code = (state_code or '').strip()
    if code:
        return code.zfill(2) if code.isdigit() else code
    prefix = (gstin or '').strip()[:2]
    return prefix if len(prefix) == 2 and prefix.isdigit() else ''


def is_inter_state(counterparty_code, seller_code=None):
    """Only a known counterparty code different from a known seller code is inter-state"""
    if seller_code is None:
        seller_code = getattr(settings, 'SELLER_STATE_CODE', '')
    seller_code = state_code_for(seller_code)
    counterparty_code = state_code_for(counterparty_code)
    return bool(seller_code and counterparty_code and seller_code != counterparty_code)


def split_gst(total_tax, counterparty_code, seller_code=None):
    total_tax = Decimal(total_tax or 0).quantize(TWO_PLACES)
    zero = Decimal('0.00')
    if is_inter_state(counterparty_code, seller_code):
        return GSTSplit(zero, zero, total_tax)
    cgst = (total_tax / 2).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    # SGST takes the odd paisa so the parts always add up
    return GSTSplit(cgst, total_tax - cgst, zero)
