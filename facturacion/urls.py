# facturacion/urls.py

from django.urls import path

from facturacion.views.timbrado_views import prueba_dian_view, timbrar_factura_view

app_name = "facturacion"

urlpatterns = [
    # factura - timbrado DIAN
    path("facturas/<str:factura_id>/timbrar", timbrar_factura_view, name="factura_timbrar"),
    path("facturas/<str:factura_id>/timbrar/", timbrar_factura_view),

    # envio manual de payload (ambiente de habilitação)
    path("dian/prueba", prueba_dian_view, name="dian_prueba"),
    path("dian/prueba/", prueba_dian_view),
]
