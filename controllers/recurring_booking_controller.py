from flask import Blueprint, request, jsonify, current_app
from services.preview_service import PreviewService
from services.group_booking_service import GroupBookingService
from services.payment_ledger import PaymentLedger
from services.cancellation_service import CancellationService

recurring_bp = Blueprint('recurring_bookings', __name__)


@recurring_bp.route('/recurring-bookings/preview', methods=['POST'])
def preview_recurring_booking():
    """Dates, skipped dates and pricing for a pattern. Writes nothing."""
    data = request.get_json(silent=True) or {}
    preview = PreviewService.preview(data)
    return jsonify({'success': True, 'data': preview}), 200


@recurring_bp.route('/recurring-bookings', methods=['POST'])
def create_recurring_booking():
    data = request.get_json(silent=True) or {}
    result = GroupBookingService.create_group(data)
    group = result['group']
    return jsonify({
        'success': True,
        'message': f"Recurring booking created with {result['bookings_created']} sessions",
        'data': {
            'group_code': group.group_code,
            'group_id': group.id,
            'bookings_created': result['bookings_created'],
            'skipped_dates': result['skipped_dates'],
            'conflicts_since_preview': result['conflicts_since_preview'],
            'total_amount': float(result['total_amount']),
            'group': group.to_dict(),
        }
    }), 201


@recurring_bp.route('/recurring-bookings', methods=['GET'])
def list_recurring_bookings():
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', current_app.config.get('RECURRING_PAGE_LIMIT', 20), type=int)
    result = GroupBookingService.list_groups(
        status=request.args.get('status') or None,
        search=request.args.get('search') or None,
        page=page,
        limit=limit
    )
    return jsonify({
        'success': True,
        'data': [g.to_dict() for g in result['groups']],
        'pagination': result['pagination'],
    }), 200


@recurring_bp.route('/recurring-bookings/<int:group_id>', methods=['GET'])
def get_recurring_booking(group_id):
    group = GroupBookingService.get_group(group_id)
    return jsonify({'success': True, 'data': group.to_dict()}), 200


@recurring_bp.route('/recurring-bookings/<int:group_id>/bookings', methods=['GET'])
def get_bookings_in_group(group_id):
    bookings = GroupBookingService.get_bookings_in_group(group_id)
    return jsonify({
        'success': True,
        'data': [b.to_summary() for b in bookings],
        'total': len(bookings),
    }), 200


@recurring_bp.route('/recurring-bookings/<int:group_id>/cancel', methods=['PATCH'])
def cancel_recurring_booking(group_id):
    result = CancellationService.cancel_group(group_id)
    return jsonify({
        'success': True,
        'message': f"Recurring booking cancelled ({result['cancelled_now']} sessions)",
        'data': result,
    }), 200


@recurring_bp.route('/recurring-bookings/<int:group_id>/payment', methods=['PATCH'])
def update_bulk_payment(group_id):
    data = request.get_json(silent=True) or {}
    snapshot = PaymentLedger.record_payment(
        group_id,
        data.get('amount'),
        method=data.get('method') or data.get('payment_method'),
        idempotency_key=request.headers.get('Idempotency-Key')
    )
    return jsonify({
        'success': True,
        'message': 'Payment recorded',
        'data': snapshot,
    }), 200
