"""Quote model."""
from sqlalchemy import Column, BigInteger, String, Numeric, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from floowly.database import Base, BigIntegerPK
from floowly.utils.formatters import isoformat, money_json, number_json


class Quote(Base):
    """
    Quote (offert) sent to a customer.

    Monetary columns are always derived from the line items by the quote
    service; they are never written from request payloads.
    """

    __tablename__ = 'quote'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'quote_number', name='uq_quote_tenant_number'),
    )

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False, index=True)
    customer_id = Column(BigInteger, ForeignKey('customer.id'), nullable=False, index=True)
    quote_number = Column(String(64), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='draft')

    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False, default=0)

    # Cost calculation helpers, stored at the precision validation accepts
    hours = Column(Numeric(12, 6), nullable=True)
    material_cost = Column(Numeric(18, 6), nullable=True)
    markup_percentage = Column(Numeric(12, 6), nullable=True)
    profit_estimate = Column(Numeric(14, 2), nullable=True)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    tenant = relationship('Tenant')
    customer = relationship('Customer', back_populates='quotes')
    items = relationship(
        'QuoteLine',
        back_populates='quote',
        cascade='all, delete-orphan',
        order_by='QuoteLine.position'
    )

    def __repr__(self):
        return f"<Quote(id={self.id}, number='{self.quote_number}', status='{self.status}', total={self.total})>"

    def to_dict(self):
        """Quote-shaped mapping consumed by the lifecycle functions."""
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'customer_id': self.customer_id,
            'quote_number': self.quote_number,
            'title': self.title,
            'description': self.description,
            'notes': self.notes,
            'terms': self.terms,
            'status': self.status,
            'subtotal': self.subtotal,
            'tax_amount': self.tax_amount,
            'total': self.total,
            'hours': self.hours,
            'material_cost': self.material_cost,
            'markup_percentage': self.markup_percentage,
            'profit_estimate': self.profit_estimate,
            'sent_at': self.sent_at,
            'expires_at': self.expires_at,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    def to_json(self):
        """JSON-ready representation for the API."""
        data = self.to_dict()
        for key in ('subtotal', 'tax_amount', 'total', 'profit_estimate'):
            data[key] = money_json(data[key])
        for key in ('hours', 'material_cost', 'markup_percentage'):
            data[key] = number_json(data[key])
        for key in ('sent_at', 'expires_at', 'created_at', 'updated_at'):
            data[key] = isoformat(data[key])
        data['customer'] = self.customer.to_summary() if self.customer else None
        data['items'] = [item.to_json() for item in self.items]
        return data
