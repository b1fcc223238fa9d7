from django.db import models


class State(models.Model):
    """Indian states with GST state codes"""
    name = models.CharField(max_length=100, unique=True)
    code = models.CharField(max_length=5, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'states'
        ordering = ['name']


class Customer(models.Model):
    """Customers with billing and shipping details"""
    billing_name = models.CharField(max_length=200, db_index=True)
    billing_address = models.TextField(blank=True)
    billing_state = models.ForeignKey(State, on_delete=models.SET_NULL, null=True, blank=True, related_name='billing_customers')
    billing_state_code = models.CharField(max_length=5, blank=True)
    billing_gstin = models.CharField(max_length=20, blank=True, db_index=True)
    contact_no = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    shipping_name = models.CharField(max_length=200, blank=True)
    shipping_address = models.TextField(blank=True)
    shipping_state = models.ForeignKey(State, on_delete=models.SET_NULL, null=True, blank=True, related_name='shipping_customers')
    shipping_state_code = models.CharField(max_length=5, blank=True)
    shipping_gstin = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.billing_name

    class Meta:
        db_table = 'customers'


class VendorManager(models.Manager):
    def upsert(self, vendor_name, gst_number='', **details):
        """
        Find a vendor by GSTIN, else by name (case-insensitive), and refresh
        its non-blank details; create it when neither matches.

        Returns (vendor, created).
        """
        vendor_name = (vendor_name or '').strip()
        gst_number = (gst_number or '').strip().upper()

        vendor = None
        if gst_number:
            vendor = self.select_for_update().filter(gst_number__iexact=gst_number).first()
        if vendor is None:
            vendor = self.select_for_update().filter(vendor_name__iexact=vendor_name).first()

        if vendor is None:
            details = {field: value for field, value in details.items() if value is not None}
            return self.create(vendor_name=vendor_name, gst_number=gst_number, **details), True

        updates = dict(details)
        if gst_number:
            updates['gst_number'] = gst_number
        changed = []
        for field, value in updates.items():
            if value in (None, ''):
                continue
            if getattr(vendor, field) != value:
                setattr(vendor, field, value)
                changed.append(field)
        if changed:
            vendor.save(update_fields=changed + ['updated_at'])
        return vendor, False


class Vendor(models.Model):
    """Suppliers of purchased stock"""
    vendor_name = models.CharField(max_length=200, db_index=True)
    contact_number = models.CharField(max_length=20, blank=True)
    email_id = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.ForeignKey(State, on_delete=models.SET_NULL, null=True, blank=True, related_name='vendors')
    gst_number = models.CharField(max_length=20, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = VendorManager()

    def __str__(self):
        return self.vendor_name

    class Meta:
        db_table = 'vendors'
