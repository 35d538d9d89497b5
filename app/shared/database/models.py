from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.config.database import Base

class TimestampMixin:
    """Mixin para timestamps automáticos"""
    fecha_creacion = Column(DateTime, server_default=func.current_timestamp(), nullable=False)
    fecha_actualizacion = Column(
        DateTime,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
        nullable=False
    )

# ===== TAXONOMÍAS =====

class Brand(Base):
    """Marca de repuestos y equipos"""
    __tablename__ = "marcas"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(255), unique=True, nullable=False)
    fecha_creacion = Column(DateTime, server_default=func.current_timestamp())

    # Relationships
    part_types = relationship("PartType", secondary="marca_tipo_repuesto", back_populates="brands")

class PartType(Base):
    """Tipo de repuesto (pantalla, batería, flex...)"""
    __tablename__ = "tipos_repuesto"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(255), unique=True, nullable=False)
    fecha_creacion = Column(DateTime, server_default=func.current_timestamp())

    # Relationships
    brands = relationship("Brand", secondary="marca_tipo_repuesto", back_populates="part_types")

class BrandPartType(Base):
    """Vínculo muchos-a-muchos marca ↔ tipo de repuesto"""
    __tablename__ = "marca_tipo_repuesto"

    marca_id = Column(Integer, ForeignKey("marcas.id"), primary_key=True)
    tipo_repuesto_id = Column(Integer, ForeignKey("tipos_repuesto.id"), primary_key=True)

class EquipmentType(Base):
    """Tipo de equipo recibido en servicio técnico (celular, tablet...)"""
    __tablename__ = "tipos_equipo"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(255), unique=True, nullable=False)
    fecha_creacion = Column(DateTime, server_default=func.current_timestamp())

# ===== PRODUCTOS =====

class Product(Base, TimestampMixin):
    """Producto / repuesto del catálogo"""
    __tablename__ = "productos"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(100), unique=True, nullable=False, index=True)
    nombre = Column(String(255), nullable=False)
    descripcion = Column(Text)
    precio = Column(Numeric(10, 2))
    precio_mayor = Column(Numeric(10, 2))
    precio_cliente = Column(Numeric(10, 2))
    stock = Column(Integer, default=0, nullable=False)
    marca_id = Column(Integer, ForeignKey("marcas.id"), index=True)
    tipo_id = Column(Integer, ForeignKey("tipos_repuesto.id"), index=True)

    # Relationships
    brand = relationship("Brand")
    part_type = relationship("PartType")

class StockMovement(Base):
    """Bitácora de ajustes manuales de stock"""
    __tablename__ = "movimientos_stock"

    id = Column(Integer, primary_key=True, index=True)
    producto_id = Column(Integer, ForeignKey("productos.id"), nullable=False, index=True)
    operacion = Column(String(20), nullable=False)
    cantidad = Column(Integer, nullable=False)
    stock_anterior = Column(Integer, nullable=False)
    stock_nuevo = Column(Integer, nullable=False)
    motivo = Column(Text)
    usuario_id = Column(Integer)
    fecha = Column(DateTime, server_default=func.current_timestamp(), nullable=False)

# ===== VENTAS =====

class Sale(Base):
    """Venta (boleta) del punto de venta"""
    __tablename__ = "ventas"

    id = Column(Integer, primary_key=True, index=True)
    numero_boleta = Column(Integer, unique=True, nullable=False, index=True)
    fecha = Column(DateTime, server_default=func.current_timestamp(), nullable=False, index=True)
    vendedor = Column(String(255), nullable=False)
    forma_pago = Column(String(50), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    monto_recibido = Column(Numeric(12, 2), nullable=False)
    vuelto = Column(Numeric(12, 2), nullable=False, default=0)
    usuario_id = Column(Integer)

    # Relationships
    items = relationship("SaleItem", back_populates="sale", order_by="SaleItem.id")

class SaleItem(Base):
    """Línea de detalle de una venta"""
    __tablename__ = "detalle_ventas"

    id = Column(Integer, primary_key=True, index=True)
    venta_id = Column(Integer, ForeignKey("ventas.id"), nullable=False, index=True)
    sku = Column(String(100), nullable=False, index=True)
    descripcion = Column(String(255), nullable=False)
    cantidad = Column(Integer, nullable=False)
    precio_unitario = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    # Relationships
    sale = relationship("Sale", back_populates="items")

# ===== ÓRDENES DE SERVICIO =====

class ServiceOrder(Base, TimestampMixin):
    """Orden de servicio técnico"""
    __tablename__ = "ordenes_servicio"

    id = Column(Integer, primary_key=True, index=True)
    codigo = Column(String(50), unique=True, index=True)
    cliente_nombre = Column(String(255), nullable=False)
    cliente_telefono = Column(String(50))
    cliente_email = Column(String(255))
    marca_id = Column(Integer, ForeignKey("marcas.id"))
    tipo_equipo_id = Column(Integer, ForeignKey("tipos_equipo.id"))
    modelo = Column(String(255))
    diagnostico = Column(Text)
    observaciones = Column(Text)
    costo_reparacion = Column(Numeric(12, 2), nullable=False, default=0)
    abono = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    estado = Column(String(20), nullable=False, default="pendiente", index=True)

    # Relationships
    brand = relationship("Brand")
    equipment_type = relationship("EquipmentType")

class EquipmentCheck(Base):
    """Checklist de recepción del equipo (una por orden, opcional)"""
    __tablename__ = "verificaciones_equipo"

    id = Column(Integer, primary_key=True, index=True)
    orden_id = Column(Integer, ForeignKey("ordenes_servicio.id"), nullable=False, index=True)
    enciende = Column(Boolean, default=False, nullable=False)
    bandeja_sim = Column(Boolean, default=False, nullable=False)
    golpes = Column(Boolean, default=False, nullable=False)
    humedad = Column(Boolean, default=False, nullable=False)
    altavoz = Column(Boolean, default=False, nullable=False)
    microfono = Column(Boolean, default=False, nullable=False)
    auricular = Column(Boolean, default=False, nullable=False)
    otro = Column(Boolean, default=False, nullable=False)
    otro_detalle = Column(Text)

    __table_args__ = (
        UniqueConstraint("orden_id", name="verificaciones_equipo_orden_unica"),
    )

class Fault(Base):
    """Falla reportada por el cliente"""
    __tablename__ = "fallas_orden"

    id = Column(Integer, primary_key=True, index=True)
    orden_id = Column(Integer, ForeignKey("ordenes_servicio.id"), nullable=False, index=True)
    posicion = Column(Integer, nullable=False, default=0)
    descripcion = Column(Text, nullable=False)
    estado = Column(String(50), nullable=False, default="pendiente")

class OrderPart(Base):
    """Repuesto consumido en una orden (no descuenta stock)"""
    __tablename__ = "repuestos_orden"

    id = Column(Integer, primary_key=True, index=True)
    orden_id = Column(Integer, ForeignKey("ordenes_servicio.id"), nullable=False, index=True)
    repuesto_id = Column(Integer, ForeignKey("productos.id"), nullable=False)
    cantidad = Column(Integer, nullable=False)
    precio_unitario = Column(Numeric(10, 2), nullable=False)

    # Relationships
    product = relationship("Product")

class OrderPhoto(Base):
    """Foto del equipo (ruta del archivo almacenado)"""
    __tablename__ = "fotos_orden"

    id = Column(Integer, primary_key=True, index=True)
    orden_id = Column(Integer, ForeignKey("ordenes_servicio.id"), nullable=False, index=True)
    ruta = Column(String(500), nullable=False)
    fecha_subida = Column(DateTime, server_default=func.current_timestamp())
