from flask import has_request_context, request

LANGUAGES = ('ru', 'en', 'uz')
DEFAULT_LANGUAGE = 'ru'

ru = {
    # Errors
    'methodNotAllowed': 'Метод не разрешён',
    'internalServerError': 'Внутренняя ошибка сервера',
    'unauthorized': 'Необходима авторизация',
    'forbidden': 'Доступ запрещён',
    'notFound': 'Не найдено',
    'badRequest': 'Неверный запрос',
    'validationError': 'Ошибка валидации',

    # Auth
    'otpSent': 'Код отправлен',
    'otpInvalid': 'Неверный код',
    'otpExpired': 'Код истёк',
    'otpNotFound': 'Код не найден или истёк',
    'otpAttemptsExceeded': 'Превышено количество попыток',
    'otpSmsTemplate': '4Event: Ваш код подтверждения: {code}. Не сообщайте его никому.',
    'phoneRequired': 'Укажите номер телефона',
    'codeRequired': 'Укажите код подтверждения',
    'loginSuccess': 'Вход выполнен успешно',
    'logoutSuccess': 'Выход выполнен успешно',
    'sessionExpired': 'Сессия истекла',
    'accountInactive': 'Аккаунт заблокирован',

    # User
    'userNotFound': 'Пользователь не найден',
    'profileUpdated': 'Профиль обновлён',
    'addressCreated': 'Адрес добавлен',
    'addressUpdated': 'Адрес обновлён',
    'addressDeleted': 'Адрес удалён',
    'addressNotFound': 'Адрес не найден',
    'addressSetDefault': 'Адрес установлен по умолчанию',
    'maxAddressesReached': 'Достигнуто максимальное количество адресов (5)',

    # Catalog
    'categoryNotFound': 'Категория не найдена',
    'productNotFound': 'Товар не найден',
    'productUnavailable': 'Товар недоступен на выбранные даты',
    'insufficientStock': 'Недостаточно товара на складе',

    # Orders
    'orderCreated': 'Заказ создан',
    'orderNotFound': 'Заказ не найден',
    'orderUpdated': 'Заказ обновлён',
    'orderCancelled': 'Заказ отменён',
    'orderFinalized': 'Заказ завершён и не может быть изменён',
    'orderNumberConflict': 'Не удалось присвоить номер заказа, попробуйте ещё раз',
    'emptyCart': 'Корзина пуста',
    'invalidDates': 'Неверные даты аренды',
    'addressRequired': 'Укажите адрес доставки',
    'minRentalDays': 'Минимальный срок аренды - 1 день',
    'paymentFailed': 'Не удалось провести оплату',

    # Favorites
    'addedToFavorites': 'Добавлено в избранное',
    'removedFromFavorites': 'Удалено из избранного',
    'alreadyInFavorites': 'Уже в избранном',

    # Cards
    'cardAdded': 'Карта добавлена',
    'cardDeleted': 'Карта удалена',
    'cardSetDefault': 'Карта установлена по умолчанию',
    'cardNotFound': 'Карта не найдена',
    'cardRequired': 'Выберите карту для оплаты',
    'maxCardsReached': 'Достигнуто максимальное количество карт (5)',

    # Order statuses
    'statusConfirmed': 'Подтверждён',
    'statusPreparing': 'Подготовка',
    'statusDelivered': 'Доставлен',
    'statusReturned': 'Возвращён',
    'statusCancelled': 'Отменён',

    # Delivery
    'deliveryFree': 'Бесплатная доставка',
    'deliveryZoneNotFound': 'Зона доставки не найдена',
    'deliveryZoneExists': 'Зона доставки с таким названием уже существует',

    # Admin
    'adminLoginSuccess': 'Вход выполнен',
    'adminInvalidKey': 'Неверный ключ',
    'adminAuthRequired': 'Требуется авторизация администратора',
    'categoryIdRequired': 'Не указан ID категории',
    'categoryHasProducts': 'Категория содержит {count} товар(ов). Все товары будут удалены вместе с категорией.',
    'categoryDeleted': 'Категория удалена',
    'categoryWithProductsDeleted': 'Категория и все товары удалены',
    'productDeleted': 'Товар удалён',
    'productDeactivated': 'Товар деактивирован (есть история заказов)',
    'customerNotFound': 'Клиент не найден',
    'settingsUpdated': 'Настройки сохранены',
    'noFilesUploaded': 'Файлы не загружены',
    'invalidFileType': 'Допускаются только изображения',
    'fileTooLarge': 'Файл слишком большой',
}

en = {
    'methodNotAllowed': 'Method not allowed',
    'internalServerError': 'Internal server error',
    'unauthorized': 'Authorization required',
    'forbidden': 'Access forbidden',
    'notFound': 'Not found',
    'badRequest': 'Bad request',
    'validationError': 'Validation error',

    'otpSent': 'Code sent',
    'otpInvalid': 'Invalid code',
    'otpExpired': 'Code expired',
    'otpNotFound': 'Code not found or expired',
    'otpAttemptsExceeded': 'Too many attempts',
    'otpSmsTemplate': '4Event: Your verification code: {code}. Do not share it with anyone.',
    'phoneRequired': 'Phone number required',
    'codeRequired': 'Verification code required',
    'loginSuccess': 'Login successful',
    'logoutSuccess': 'Logout successful',
    'sessionExpired': 'Session expired',
    'accountInactive': 'Account is inactive',

    'userNotFound': 'User not found',
    'profileUpdated': 'Profile updated',
    'addressCreated': 'Address created',
    'addressUpdated': 'Address updated',
    'addressDeleted': 'Address deleted',
    'addressNotFound': 'Address not found',
    'addressSetDefault': 'Address set as default',
    'maxAddressesReached': 'Maximum addresses reached (5)',

    'categoryNotFound': 'Category not found',
    'productNotFound': 'Product not found',
    'productUnavailable': 'Product unavailable for selected dates',
    'insufficientStock': 'Insufficient stock',

    'orderCreated': 'Order created',
    'orderNotFound': 'Order not found',
    'orderUpdated': 'Order updated',
    'orderCancelled': 'Order cancelled',
    'orderFinalized': 'Order is closed and cannot be changed',
    'orderNumberConflict': 'Could not assign an order number, please try again',
    'emptyCart': 'Cart is empty',
    'invalidDates': 'Invalid rental dates',
    'addressRequired': 'Delivery address required',
    'minRentalDays': 'Minimum rental period is 1 day',
    'paymentFailed': 'Payment failed',

    'addedToFavorites': 'Added to favorites',
    'removedFromFavorites': 'Removed from favorites',
    'alreadyInFavorites': 'Already in favorites',

    'cardAdded': 'Card added',
    'cardDeleted': 'Card deleted',
    'cardSetDefault': 'Card set as default',
    'cardNotFound': 'Card not found',
    'cardRequired': 'Please select a payment card',
    'maxCardsReached': 'Maximum cards reached (5)',

    'statusConfirmed': 'Confirmed',
    'statusPreparing': 'Preparing',
    'statusDelivered': 'Delivered',
    'statusReturned': 'Returned',
    'statusCancelled': 'Cancelled',

    'deliveryFree': 'Free delivery',
    'deliveryZoneNotFound': 'Delivery zone not found',
    'deliveryZoneExists': 'A delivery zone with this name already exists',

    'adminLoginSuccess': 'Login successful',
    'adminInvalidKey': 'Invalid key',
    'adminAuthRequired': 'Admin authentication required',
    'categoryIdRequired': 'Category ID is required',
    'categoryHasProducts': 'Category contains {count} product(s). All of them will be deleted with the category.',
    'categoryDeleted': 'Category deleted',
    'categoryWithProductsDeleted': 'Category and all its products deleted',
    'productDeleted': 'Product deleted',
    'productDeactivated': 'Product deactivated (has order history)',
    'customerNotFound': 'Customer not found',
    'settingsUpdated': 'Settings saved',
    'noFilesUploaded': 'No files uploaded',
    'invalidFileType': 'Only images are allowed',
    'fileTooLarge': 'File is too large',
}

uz = {
    'methodNotAllowed': 'Usul ruxsat etilmagan',
    'internalServerError': 'Ichki server xatosi',
    'unauthorized': 'Avtorizatsiya talab qilinadi',
    'forbidden': 'Kirish taqiqlangan',
    'notFound': 'Topilmadi',
    'badRequest': "Noto'g'ri so'rov",
    'validationError': 'Tekshirish xatosi',

    'otpSent': 'Kod yuborildi',
    'otpInvalid': "Noto'g'ri kod",
    'otpExpired': 'Kod muddati tugagan',
    'otpNotFound': 'Kod topilmadi yoki muddati tugagan',
    'otpAttemptsExceeded': 'Urinishlar soni oshib ketdi',
    'otpSmsTemplate': '4Event: Tasdiqlash kodingiz: {code}. Uni hech kimga aytmang.',
    'phoneRequired': 'Telefon raqamini kiriting',
    'codeRequired': 'Tasdiqlash kodini kiriting',
    'loginSuccess': 'Kirish muvaffaqiyatli',
    'logoutSuccess': 'Chiqish muvaffaqiyatli',
    'sessionExpired': 'Sessiya muddati tugadi',
    'accountInactive': 'Hisob bloklangan',

    'userNotFound': 'Foydalanuvchi topilmadi',
    'profileUpdated': 'Profil yangilandi',
    'addressCreated': "Manzil qo'shildi",
    'addressUpdated': 'Manzil yangilandi',
    'addressDeleted': "Manzil o'chirildi",
    'addressNotFound': 'Manzil topilmadi',
    'addressSetDefault': 'Manzil asosiy qilib belgilandi',
    'maxAddressesReached': 'Maksimal manzillar soniga yetildi (5)',

    'categoryNotFound': 'Kategoriya topilmadi',
    'productNotFound': 'Mahsulot topilmadi',
    'productUnavailable': 'Mahsulot tanlangan sanalar uchun mavjud emas',
    'insufficientStock': "Omborda yetarli mahsulot yo'q",

    'orderCreated': 'Buyurtma yaratildi',
    'orderNotFound': 'Buyurtma topilmadi',
    'orderUpdated': 'Buyurtma yangilandi',
    'orderCancelled': 'Buyurtma bekor qilindi',
    'orderFinalized': "Buyurtma yopilgan va uni o'zgartirib bo'lmaydi",
    'emptyCart': "Savat bo'sh",
    'invalidDates': "Noto'g'ri ijara sanalari",
    'addressRequired': 'Yetkazib berish manzilini kiriting',
    'minRentalDays': 'Minimal ijara muddati - 1 kun',
    'paymentFailed': "To'lov amalga oshmadi",

    'addedToFavorites': "Sevimlilarga qo'shildi",
    'removedFromFavorites': "Sevimlilardan o'chirildi",
    'alreadyInFavorites': 'Allaqachon sevimlilarda',

    'cardAdded': "Karta qo'shildi",
    'cardDeleted': "Karta o'chirildi",
    'cardSetDefault': 'Karta asosiy qilib belgilandi',
    'cardNotFound': 'Karta topilmadi',
    'cardRequired': "To'lov kartasini tanlang",
    'maxCardsReached': 'Maksimal kartalar soniga yetildi (5)',

    'statusConfirmed': 'Tasdiqlangan',
    'statusPreparing': 'Tayyorlanmoqda',
    'statusDelivered': 'Yetkazildi',
    'statusReturned': 'Qaytarildi',
    'statusCancelled': 'Bekor qilindi',

    'deliveryFree': 'Bepul yetkazib berish',
    'deliveryZoneExists': 'Bunday nomli yetkazib berish zonasi allaqachon mavjud',

    'adminLoginSuccess': 'Kirish muvaffaqiyatli',
    'adminInvalidKey': "Noto'g'ri kalit",
}

TRANSLATIONS = {'ru': ru, 'en': en, 'uz': uz}


def get_language(req=None):
    """x-language header first, then the primary Accept-Language tag, then ru."""
    req = req or request
    header = (req.headers.get('x-language') or '').strip().lower()
    if header in LANGUAGES:
        return header

    accept_language = req.headers.get('Accept-Language')
    if accept_language:
        primary = accept_language.split(',')[0].split(';')[0].split('-')[0].strip().lower()
        if primary in LANGUAGES:
            return primary

    return DEFAULT_LANGUAGE


def translate(key, language=DEFAULT_LANGUAGE, **params):
    table = TRANSLATIONS.get(language, ru)
    text = table.get(key) or ru.get(key) or key
    return text.format(**params) if params else text


def t(key, **params):
    language = get_language() if has_request_context() else DEFAULT_LANGUAGE
    return translate(key, language, **params)
