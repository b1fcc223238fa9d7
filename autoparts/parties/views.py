from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import Q
from autoparts.core.exceptions import api_error_boundary
from autoparts.core.lookup_cache import lookup_names
from autoparts.core.pagination import parse_page_params, paginate_queryset
from .models import State, Customer, Vendor
from .serializers import StateSerializer, CustomerSerializer, VendorSerializer


def attach_state_names(rows, *fields):
    """Add <field>_name for each state field, resolved in one batch"""
    state_ids = {row.get(field) for row in rows for field in fields if row.get(field)}
    names = lookup_names('states', State, state_ids)
    for row in rows:
        for field in fields:
            state_id = row.get(field)
            row[f'{field}_name'] = names.get(str(state_id)) if state_id else None
    return rows


# State views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch states', POST='Failed to create state')
def state_list_create(request):
    """List all states or create a new state"""
    if request.method == 'GET':
        queryset = State.objects.all()
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(name__icontains=search)

        page, limit = parse_page_params(request.query_params)
        rows, pagination = paginate_queryset(queryset.order_by('name'), page, limit)
        return Response({
            'states': StateSerializer(rows, many=True).data,
            'pagination': pagination,
        })
    else:
        serializer = StateSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch state', PUT='Failed to update state', PATCH='Failed to update state', DELETE='Failed to delete state')
def state_detail(request, pk):
    """Retrieve, update or delete a state"""
    state = get_object_or_404(State, pk=pk)

    if request.method == 'GET':
        return Response(StateSerializer(state).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = StateSerializer(state, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:
        state.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch customers', POST='Failed to create customer')
def customer_list_create(request):
    """List all customers or create a new customer"""
    if request.method == 'GET':
        queryset = Customer.objects.all()
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(billing_name__icontains=search) |
                Q(contact_no__icontains=search) |
                Q(billing_gstin__icontains=search)
            )

        page, limit = parse_page_params(request.query_params)
        rows, pagination = paginate_queryset(queryset.order_by('billing_name', 'id'), page, limit)
        customers = attach_state_names(CustomerSerializer(rows, many=True).data, 'billing_state', 'shipping_state')
        return Response({
            'customers': customers,
            'pagination': pagination,
        })
    else:
        serializer = CustomerSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch customer', PUT='Failed to update customer', PATCH='Failed to update customer', DELETE='Failed to delete customer')
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        data = CustomerSerializer(customer).data
        attach_state_names([data], 'billing_state', 'shipping_state')
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:
        customer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Vendor views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch vendors', POST='Failed to create vendor')
def vendor_list_create(request):
    """List all vendors or create a new vendor"""
    if request.method == 'GET':
        queryset = Vendor.objects.all()
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(vendor_name__icontains=search) |
                Q(contact_number__icontains=search) |
                Q(gst_number__icontains=search)
            )

        page, limit = parse_page_params(request.query_params)
        rows, pagination = paginate_queryset(queryset.order_by('vendor_name', 'id'), page, limit)
        vendors = attach_state_names(VendorSerializer(rows, many=True).data, 'state')
        return Response({
            'vendors': vendors,
            'pagination': pagination,
        })
    else:
        serializer = VendorSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch vendor', PUT='Failed to update vendor', PATCH='Failed to update vendor', DELETE='Failed to delete vendor')
def vendor_detail(request, pk):
    """Retrieve, update or delete a vendor"""
    vendor = get_object_or_404(Vendor, pk=pk)

    if request.method == 'GET':
        data = VendorSerializer(vendor).data
        attach_state_names([data], 'state')
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = VendorSerializer(vendor, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:
        if vendor.purchases.exists():
            return Response(
                {'message': 'Vendor has purchases and cannot be deleted'},
                status=status.HTTP_400_BAD_REQUEST
            )
        vendor.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
