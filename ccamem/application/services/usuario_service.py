# RUTA: ccamem/application/services/usuario_service.py

import logging

from ccamem.core.errors import ErrorDuplicado, ErrorNoEncontrado, ErrorPermiso, ErrorValidacion
from ccamem.core.security import generate_password_hash

# Configura un logger para este módulo
logger = logging.getLogger(__name__)

CAMPOS_ACTUALIZABLES = ('nombre', 'email', 'password', 'rol', 'area', 'activo')


class UsuarioService:
    def __init__(self, usuario_repository):
        self._usuario_repo = usuario_repository

    def listar(self, filtros, page, limit):
        return self._usuario_repo.get_all_paginated(filtros, page, limit)

    def obtener(self, user_id):
        usuario = self._usuario_repo.find_by_id(user_id)
        if not usuario:
            raise ErrorNoEncontrado('Usuario no encontrado')
        return usuario

    def _validar_area(self, area):
        if area and not self._usuario_repo.area_existe(area):
            raise ErrorValidacion('El área especificada no existe')

    def crear(self, datos, admin):
        """
        Crea un usuario a partir de los datos ya validados por UsuarioForm.
        Devuelve el usuario recién creado.
        """
        email = datos['email'].lower()
        if self._usuario_repo.email_en_uso(email):
            raise ErrorDuplicado('Ya existe un usuario con ese correo electrónico')
        area = datos.get('area')
        self._validar_area(area)

        new_id = self._usuario_repo.create_user(datos['nombre'], email, generate_password_hash(datos['password']),
                                                datos['rol'], area, admin.id)
        logger.info(f"Nuevo usuario creado por {admin.email}: {email} (ID: {new_id})")
        return self._usuario_repo.find_by_id(new_id)

    def actualizar(self, user_id, datos, admin):
        usuario = self.obtener(user_id)
        cambios = {campo: datos[campo] for campo in CAMPOS_ACTUALIZABLES if campo in datos}
        if not cambios:
            raise ErrorValidacion('No se proporcionaron campos para actualizar')

        es_propio = usuario.id == admin.id
        if 'rol' in cambios:
            if not cambios['rol']:
                raise ErrorValidacion('El rol debe ser: admin, usuario o consulta')
            if es_propio and cambios['rol'] != usuario.rol:
                raise ErrorPermiso('No puedes cambiar tu propio rol')
        if 'activo' in cambios:
            cambios['activo'] = bool(cambios['activo'])
            if es_propio and not cambios['activo']:
                raise ErrorPermiso('No puedes desactivar tu propia cuenta')
        if 'nombre' in cambios and not cambios['nombre']:
            raise ErrorValidacion('El nombre no puede estar vacío')
        if 'email' in cambios:
            if not cambios['email']:
                raise ErrorValidacion('El formato del email no es válido')
            cambios['email'] = cambios['email'].lower()
            if self._usuario_repo.email_en_uso(cambios['email'], excluir_id=user_id):
                raise ErrorDuplicado('Ya existe otro usuario con ese correo electrónico')
        if 'area' in cambios:
            self._validar_area(cambios['area'])
        if 'password' in cambios:
            if not cambios['password']:
                del cambios['password']
            else:
                cambios['password'] = generate_password_hash(cambios['password'])

        modificados = self._usuario_repo.update_user(user_id, cambios, admin.id)
        logger.info(f"Usuario {user_id} actualizado por {admin.email}. Campos: {modificados}")
        return self._usuario_repo.find_by_id(user_id)

    def eliminar(self, user_id, admin):
        """Desactiva (borrado lógico) al usuario."""
        if user_id == admin.id:
            raise ErrorPermiso('No puedes eliminar tu propia cuenta')
        usuario = self.obtener(user_id)
        if not usuario.activo:
            raise ErrorValidacion('El usuario ya está inactivo')
        self._usuario_repo.deactivate_user(user_id, admin.id)
        logger.info(f"Usuario {usuario.email} desactivado por {admin.email}")

    def estadisticas(self):
        stats, por_area = self._usuario_repo.get_estadisticas()
        stats = {k: int(v or 0) for k, v in stats.items()}
        return {
            'resumen': {
                'usuarios_activos': stats['usuarios_activos'],
                'usuarios_inactivos': stats['usuarios_inactivos'],
                'total_usuarios': stats['total_usuarios'],
                'por_rol': {
                    'administradores': stats['administradores'],
                    'usuarios': stats['usuarios'],
                    'consulta': stats['consulta'],
                },
                'areas_con_usuarios': stats['areas_con_usuarios'],
            },
            'usuarios_por_area': por_area,
        }
